from rest_framework import permissions


class IsTeacherOrAdmin(permissions.BasePermission):
    """Teachers, admins and staff. Students get 403."""
    message = "Teacher or admin access required."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return bool(getattr(user, 'is_teacher', False) or user.is_staff)
