import logging

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from cores import crypto
from cores.exceptions import DecryptError

logger = logging.getLogger(__name__)

ENCRYPTED_FIELDS = ('first_name_enc', 'middle_name_enc', 'last_name_enc')


class Command(BaseCommand):
    help = 'Re-encrypts stored PII name fields under the first key in PII_ENC_KEYS'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='Count rows without writing them')

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        User = get_user_model()
        updated = 0
        failed = 0

        for user in User.objects.order_by('pk').iterator():
            changes = {}
            for field in ENCRYPTED_FIELDS:
                token = getattr(user, field)
                if not token:
                    continue
                try:
                    changes[field] = crypto.reencrypt(token)
                except DecryptError as exc:
                    failed += 1
                    logger.warning("User %s field %s could not be decrypted: %s", user.pk, field, exc)
            if not changes:
                continue
            updated += 1
            if not dry_run:
                with transaction.atomic():
                    User.objects.filter(pk=user.pk).update(**changes)

        verb = 'Would re-encrypt' if dry_run else 'Re-encrypted'
        self.stdout.write(self.style.SUCCESS(f"{verb} {updated} user(s); {failed} field(s) failed"))
        if failed:
            self.stdout.write(self.style.WARNING("Failed fields were left untouched."))
