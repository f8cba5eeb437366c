# assessments/models.py
from django.db import models
from django.conf import settings

from courses.models import Course, Module
from quizzes.models import Quiz


class QuizAttemptsRoot(models.Model):
    """
    Per (user, quiz) rollup. Every field except the keys is derived from the
    attempt rows and rewritten wholesale by assessments.services.refresh_rollup.
    """
    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='quiz_rollups', on_delete=models.CASCADE)
    quiz = models.ForeignKey(Quiz, related_name='rollups', on_delete=models.CASCADE)
    course = models.ForeignKey(Course, on_delete=models.SET_NULL, null=True, blank=True)
    module = models.ForeignKey(Module, on_delete=models.SET_NULL, null=True, blank=True)

    attempts_used = models.PositiveIntegerField(default=0)
    last_score = models.FloatField(null=True, blank=True)
    last_total = models.FloatField(null=True, blank=True)
    last_score_percent = models.IntegerField(null=True, blank=True)
    best_percent = models.IntegerField(null=True, blank=True)
    # Stays None until some attempt has a manually graded portion
    best_graded_percent = models.IntegerField(null=True, blank=True)
    last_submitted_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('user', 'quiz')

    def __str__(self):
        return f"{self.user} - {self.quiz} ({self.attempts_used})"


class Attempt(models.Model):
    root = models.ForeignKey(QuizAttemptsRoot, related_name='attempts', on_delete=models.CASCADE)

    auto_score = models.FloatField(default=0)
    auto_total = models.FloatField(default=0)
    auto_percent = models.IntegerField(default=0)

    # Only the grading cascade writes these
    graded_score = models.FloatField(default=0)
    graded_total = models.FloatField(default=0)
    graded_percent = models.IntegerField(default=0)

    # Composite of auto + graded; the authoritative score
    percent = models.IntegerField(default=0)

    submitted_at = models.DateTimeField()
    time_taken_seconds = models.PositiveIntegerField(null=True, blank=True)
    reason = models.CharField(max_length=30, default='manual')
    answers = models.JSONField(default=dict, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['submitted_at', 'id']

    def __str__(self):
        return f"Attempt {self.pk} ({self.percent}%)"


class EssaySubmission(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        GRADED = "graded", "Graded"
        NEEDS_REVIEW = "needs_review", "Needs Review"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='essay_submissions', on_delete=models.CASCADE)
    # Back-reference for the grading cascade, not ownership
    attempt = models.ForeignKey(Attempt, related_name='essays', on_delete=models.SET_NULL, null=True, blank=True)
    quiz = models.ForeignKey(Quiz, related_name='essay_submissions', on_delete=models.CASCADE)
    course = models.ForeignKey(Course, on_delete=models.SET_NULL, null=True, blank=True)
    module = models.ForeignKey(Module, on_delete=models.SET_NULL, null=True, blank=True)
    teacher = models.ForeignKey(
        settings.AUTH_USER_MODEL, related_name='essays_to_grade', on_delete=models.SET_NULL, null=True, blank=True
    )

    question_index = models.PositiveIntegerField()
    question_text = models.TextField(blank=True)
    answer = models.TextField()

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    score = models.FloatField(null=True, blank=True)
    max_score = models.FloatField(null=True, blank=True, default=10)
    feedback = models.TextField(blank=True)
    graded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, related_name='+', on_delete=models.SET_NULL, null=True, blank=True
    )

    created_at = models.DateTimeField(auto_now_add=True)
    graded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user} - {self.quiz} Q{self.question_index} ({self.status})"


class CompletedModule(models.Model):
    """One-way marker: written when a passing attempt lands, never removed here."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='completed_modules', on_delete=models.CASCADE)
    module = models.ForeignKey(Module, related_name='completions', on_delete=models.CASCADE)
    course = models.ForeignKey(Course, on_delete=models.SET_NULL, null=True, blank=True)
    quiz = models.ForeignKey(Quiz, on_delete=models.SET_NULL, null=True, blank=True)
    percent = models.IntegerField()
    completed_at = models.DateTimeField()

    class Meta:
        unique_together = ('user', 'module')
