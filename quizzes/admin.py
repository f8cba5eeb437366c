from django.contrib import admin

from .models import Question, Quiz


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0


@admin.register(Quiz)
class QuizAdmin(admin.ModelAdmin):
    list_display = ('title', 'course', 'module', 'attempts_allowed', 'passing_percent', 'archived')
    list_filter = ('archived',)
    inlines = [QuestionInline]
