from rest_framework import permissions, views
from rest_framework.response import Response

from assessments.permissions import IsTeacherOrAdmin
from cores.exceptions import ValidationError
from cores.models import PlatformSetting

from .assignment_analytics import build_assignment_analytics
from .overview import build_overview_analytics, build_student_quiz_analytics
from .quiz_analytics import build_quiz_analytics


def _optional_int(request, name, minimum=None):
    raw = request.query_params.get(name)
    if raw in (None, '', 'all'):
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer.")
    return value if minimum is None else max(minimum, value)


class _TeacherReportView(views.APIView):
    permission_classes = [IsTeacherOrAdmin]
    builder = None

    def get(self, request):
        report = self.builder(
            request.user.pk,
            class_id=_optional_int(request, 'classId'),
            pass_threshold=PlatformSetting.load().analytics_pass_threshold,
            limit_students=_optional_int(request, 'limitStudents', minimum=1),
        )
        return Response({"success": True, **report})


class QuizAnalyticsView(_TeacherReportView):
    builder = staticmethod(build_quiz_analytics)


class AssignmentAnalyticsView(_TeacherReportView):
    builder = staticmethod(build_assignment_analytics)


class OverviewAnalyticsView(_TeacherReportView):
    builder = staticmethod(build_overview_analytics)


class StudentQuizAnalyticsView(views.APIView):
    """The logged-in student's own quiz summary."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        report = build_student_quiz_analytics(request.user, course_id=_optional_int(request, 'courseId'))
        return Response({"success": True, **report})
