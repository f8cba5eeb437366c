from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class LMSUserAdmin(UserAdmin):
    list_display = ('email', 'username', 'role', 'student_id', 'average_quiz_score', 'is_staff')
    list_filter = ('role', 'is_staff')
    fieldsets = UserAdmin.fieldsets + (
        ('School', {'fields': ('role', 'student_id', 'grade_level', 'section', 'average_quiz_score', 'avatar')}),
    )
