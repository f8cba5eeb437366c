# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models

from cores.crypto import safe_decrypt


class User(AbstractUser):
    class Role(models.TextChoices):
        STUDENT = "student", "Student"
        TEACHER = "teacher", "Teacher"
        ADMIN = "admin", "Admin"

    # Enforce unique email for authentication
    email = models.EmailField(unique=True)

    role = models.CharField(max_length=20, choices=Role.choices, default=Role.STUDENT)
    # School-facing id (what teachers see on rosters), separate from the pk
    student_id = models.CharField(max_length=50, blank=True, null=True, unique=True)

    # AES-GCM tokens produced by cores.crypto.encrypt
    first_name_enc = models.TextField(blank=True)
    middle_name_enc = models.TextField(blank=True)
    last_name_enc = models.TextField(blank=True)

    grade_level = models.CharField(max_length=20, blank=True)
    section = models.CharField(max_length=50, blank=True)

    # Re-derived from rollups after every submission / grade
    average_quiz_score = models.IntegerField(null=True, blank=True)

    avatar = models.ImageField(upload_to="avatars/", blank=True, null=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    @property
    def is_teacher(self):
        return self.role in (self.Role.TEACHER, self.Role.ADMIN) or self.is_staff

    def decrypted_names(self):
        return {
            'first_name': safe_decrypt(self.first_name_enc, self.first_name),
            'middle_name': safe_decrypt(self.middle_name_enc, ''),
            'last_name': safe_decrypt(self.last_name_enc, self.last_name),
        }

    @property
    def display_name(self):
        """Decrypted name, then plaintext names, then username."""
        names = self.decrypted_names()
        full = " ".join(p for p in (names['first_name'], names['middle_name'], names['last_name']) if p).strip()
        if full:
            return full
        full = self.get_full_name().strip()
        return full or self.username or "Student"

    def __str__(self):
        return self.email
