# quizzes/models.py
from django.db import models

from courses.models import Course, Module, SchoolClass


def default_quiz_settings():
    return {
        'timerEnabled': False,
        'shuffleQuestions': True,
        'pagination': {'enabled': False, 'perPage': 1},
        'backtrackingAllowed': True,
    }


class Quiz(models.Model):
    course = models.ForeignKey(Course, related_name='quizzes', on_delete=models.CASCADE)
    module = models.ForeignKey(Module, related_name='quizzes', on_delete=models.SET_NULL, null=True, blank=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    # See quizzes.validators.normalize_settings for the shape
    settings = models.JSONField(default=default_quiz_settings)

    # None = unlimited
    attempts_allowed = models.PositiveIntegerField(null=True, blank=True)
    # None = platform default pass mark
    passing_percent = models.PositiveIntegerField(null=True, blank=True)

    due_at = models.DateTimeField(null=True, blank=True)
    publish_at = models.DateTimeField(null=True, blank=True)

    # Empty = visible to every class the course is assigned to
    assigned_classes = models.ManyToManyField(SchoolClass, blank=True, related_name='quizzes')
    archived = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'quizzes'

    @property
    def total_questions(self):
        return len(self.questions.all())

    def effective_passing_percent(self):
        if self.passing_percent is not None:
            return self.passing_percent
        from cores.models import PlatformSetting
        return PlatformSetting.load().default_pass_mark

    def __str__(self):
        return self.title


class Question(models.Model):
    quiz = models.ForeignKey(Quiz, related_name='questions', on_delete=models.CASCADE)
    # Authoring order; essay answer keys (essay_<index>) point at this
    index = models.PositiveIntegerField(default=0)
    text = models.TextField()
    # {"A": "...", "B": "..."}; empty for essay questions
    choices = models.JSONField(default=dict, blank=True)
    correct_answer = models.TextField(null=True, blank=True)
    image_url = models.CharField(max_length=1000, null=True, blank=True)

    class Meta:
        ordering = ['index', 'id']

    @property
    def is_essay(self):
        return not self.choices

    def __str__(self):
        return f"{self.text[:50]}..."
