from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import generics, permissions, status, views
from rest_framework.response import Response

from cores.exceptions import Forbidden, ValidationError
from cores.queries import fetch_ordered
from cores.utils import chunked
from courses.views import courses_for

from . import services
from .models import EssaySubmission, QuizAttemptsRoot
from .permissions import IsTeacherOrAdmin
from .serializers import (
    AttemptSubmitSerializer, EssaySubmissionSerializer, GradeEssaySerializer, QuizRollupSerializer,
)

User = get_user_model()

MAX_PAGE_SIZE = 100


def _int_param(raw, default):
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


# --- STUDENT VIEWS ---

class SubmitAttemptView(views.APIView):
    """Student submits a finished quiz; the client has already auto-scored it."""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, quiz_id):
        serializer = AttemptSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        receipt = services.submit_attempt(
            request.user,
            quiz_id,
            data['score'],
            data['total'],
            time_taken_seconds=data.get('timeTakenSeconds'),
            answers=data.get('answers'),
            reason=data.get('reason'),
            module_id=data.get('moduleId'),
            course_id=data.get('courseId'),
        )
        return Response(
            {"success": True, "message": "Quiz attempt recorded.", **receipt.as_payload()},
            status=status.HTTP_201_CREATED,
        )


def _target_student(request):
    """The requesting user, or ?userId=... when a teacher is looking."""
    user_id = request.query_params.get('userId')
    if not user_id or str(user_id) == str(request.user.pk):
        return request.user
    if not request.user.is_teacher:
        raise Forbidden("Not authorized for this student.")
    return get_object_or_404(User, pk=user_id)


class AttemptStatusView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        raw = str(request.query_params.get('quizIds', '')).strip()
        quiz_ids = [part.strip() for part in raw.split(',') if part.strip()]
        if not all(part.isdigit() for part in quiz_ids):
            raise ValidationError("quizIds must be a comma separated list of ids.")
        return Response({"success": True, "data": services.attempt_status(_target_student(request), quiz_ids)})


class AttemptResultsView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, quiz_id):
        results = services.attempt_results(_target_student(request), quiz_id)
        return Response({"success": True, **results})


class StudentRollupListView(generics.ListAPIView):
    """Per-quiz summaries for the logged-in student."""
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = QuizRollupSerializer

    def get_queryset(self):
        return QuizAttemptsRoot.objects.filter(user=self.request.user).select_related('quiz').order_by('-last_submitted_at')


# --- TEACHER VIEWS ---

def _teacher_course_ids(user):
    return list(courses_for(user).values_list('pk', flat=True))


def _essays_in_scope(user, status_filter=None):
    """Essays on the teacher's courses, newest first."""
    rows = []
    for batch in chunked(_teacher_course_ids(user)):
        queryset = EssaySubmission.objects.filter(course_id__in=batch).select_related('user')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        rows.extend(fetch_ordered(queryset, '-created_at', label='essays'))
    rows.sort(key=lambda essay: essay.created_at, reverse=True)
    return rows


def _essay_for_teacher(user, essay_id, message):
    essay = get_object_or_404(EssaySubmission, pk=essay_id)
    if essay.course_id is None or essay.course_id not in _teacher_course_ids(user):
        raise Forbidden(message)
    return essay


class EssayListView(views.APIView):
    permission_classes = [IsTeacherOrAdmin]

    def get(self, request):
        status_filter = str(request.query_params.get('status', '')).lower()
        page = max(1, _int_param(request.query_params.get('page'), 1))
        page_size = max(1, min(MAX_PAGE_SIZE, _int_param(request.query_params.get('pageSize'), 20)))

        essays = _essays_in_scope(request.user, status_filter)
        start = (page - 1) * page_size
        items = EssaySubmissionSerializer(essays[start:start + page_size], many=True).data
        return Response({"success": True, "total": len(essays), "page": page, "pageSize": page_size, "items": items})


class EssayDetailView(views.APIView):
    permission_classes = [IsTeacherOrAdmin]

    def get(self, request, essay_id):
        essay = _essay_for_teacher(request.user, essay_id, "Not authorized for this submission.")
        return Response({"success": True, "essay": EssaySubmissionSerializer(essay).data})


class GradeEssayView(views.APIView):
    permission_classes = [IsTeacherOrAdmin]

    def post(self, request, essay_id):
        _essay_for_teacher(request.user, essay_id, "Not authorized to grade this submission.")
        serializer = GradeEssaySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        essay = services.grade_essay(
            essay_id,
            data['score'],
            data['maxScore'],
            feedback=data['feedback'],
            status=data['status'],
            grader=request.user,
        )
        return Response({
            "success": True,
            "message": "Essay graded and attempt updated.",
            "essay": EssaySubmissionSerializer(essay).data,
        })
