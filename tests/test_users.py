import pytest

from cores import crypto

from .conftest import tampered

pytestmark = pytest.mark.django_db


def test_display_name_includes_middle_name(make_user):
    user = make_user(
        'student',
        first_name_enc=crypto.encrypt('Maria'),
        middle_name_enc=crypto.encrypt('Clara'),
        last_name_enc=crypto.encrypt('Santos'),
    )
    assert user.display_name == 'Maria Clara Santos'


def test_display_name_skips_unreadable_middle_name(make_user):
    user = make_user(
        'student',
        first_name_enc=crypto.encrypt('Maria'),
        middle_name_enc=tampered('Clara'),
        last_name_enc=crypto.encrypt('Santos'),
    )
    assert user.display_name == 'Maria Santos'
