from django.db import models
from django.core.cache import cache
from django.conf import settings

from .conf import lms_setting


class PlatformSetting(models.Model):
    # --- Grading Defaults ---
    default_pass_mark = models.IntegerField(default=60, help_text="Quiz passing percent when a quiz sets none")
    default_quiz_duration = models.IntegerField(default=30, help_text="Default timer duration in minutes")
    default_essay_max_score = models.IntegerField(default=10)

    # --- Analytics ---
    analytics_pass_threshold = models.IntegerField(default=75, help_text="Average below this marks a student At Risk")

    def save(self, *args, **kwargs):
        self.pk = 1  # Singleton pattern
        super().save(*args, **kwargs)
        cache.set('platform_settings', self)

    def delete(self, *args, **kwargs):
        pass

    @classmethod
    def load(cls):
        obj = cache.get('platform_settings')
        if obj is None:
            obj, created = cls.objects.get_or_create(
                pk=1,
                defaults={
                    'default_pass_mark': lms_setting('DEFAULT_PASSING_PERCENT'),
                    'default_quiz_duration': lms_setting('DEFAULT_QUIZ_DURATION'),
                    'default_essay_max_score': lms_setting('DEFAULT_ESSAY_MAX_SCORE'),
                    'analytics_pass_threshold': lms_setting('ANALYTICS_PASS_THRESHOLD'),
                },
            )
            cache.set('platform_settings', obj)
        return obj

    def __str__(self):
        return "Platform Settings"


class AuditLog(models.Model):
    ACTION_CHOICES = [
        ('CREATE', 'Create'),
        ('UPDATE', 'Update'),
        ('DELETE', 'Delete'),
        ('LOGIN', 'Login'),
        ('GRADE', 'Grade Submitted'),
        ('ENROLL', 'Student Enrolled'),
        ('SETTINGS', 'Settings Changed'),
    ]

    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    target_model = models.CharField(max_length=50, help_text="e.g., Quiz, User, EssaySubmission")
    target_object_id = models.CharField(max_length=100, blank=True, null=True)
    details = models.TextField(blank=True, help_text="Description of changes")
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']

    @classmethod
    def record(cls, actor, action, target, details=''):
        return cls.objects.create(
            actor=actor,
            action=action,
            target_model=type(target).__name__,
            target_object_id=str(target.pk),
            details=details,
        )

    def __str__(self):
        return f"{self.actor} - {self.action} - {self.timestamp}"
