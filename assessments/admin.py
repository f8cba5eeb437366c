from django.contrib import admin

from .models import Attempt, CompletedModule, EssaySubmission, QuizAttemptsRoot


class AttemptInline(admin.TabularInline):
    model = Attempt
    extra = 0
    readonly_fields = ('auto_percent', 'graded_percent', 'percent', 'submitted_at')


@admin.register(QuizAttemptsRoot)
class QuizAttemptsRootAdmin(admin.ModelAdmin):
    list_display = ('user', 'quiz', 'attempts_used', 'best_percent', 'best_graded_percent', 'last_submitted_at')
    inlines = [AttemptInline]


@admin.register(EssaySubmission)
class EssaySubmissionAdmin(admin.ModelAdmin):
    list_display = ('user', 'quiz', 'question_index', 'status', 'score', 'max_score', 'created_at')
    list_filter = ('status',)


admin.site.register(CompletedModule)
