from rest_framework import filters, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from assessments.permissions import IsTeacherOrAdmin
from cores.exceptions import Forbidden, ValidationError
from cores.models import AuditLog
from courses.views import courses_for

from . import services
from .models import Quiz
from .serializers import QuizListSerializer, QuizSerializer


class QuizViewSet(viewsets.ModelViewSet):
    filter_backends = [filters.SearchFilter]
    search_fields = ['title', 'course__title']

    def get_permissions(self):
        if self.action in ['list', 'retrieve']:
            return [permissions.IsAuthenticated()]
        return [IsTeacherOrAdmin()]

    def get_serializer_class(self):
        if self.action == 'list':
            return QuizListSerializer
        return QuizSerializer

    def get_queryset(self):
        user = self.request.user
        if user.is_teacher:
            queryset = Quiz.objects.filter(course__in=courses_for(user))
        else:
            queryset = Quiz.objects.filter(course__assigned_classes__roster__student=user).distinct()

        include_archived = str(self.request.query_params.get('include_archived', '')).lower() in ('1', 'true', 'yes')
        if not include_archived:
            queryset = queryset.filter(archived=False)
        course_id = self.request.query_params.get('course')
        if course_id:
            queryset = queryset.filter(course_id=course_id)
        return queryset.prefetch_related('questions').order_by('-created_at')

    def _check_course(self, course):
        if not course.is_taught_by(self.request.user):
            raise Forbidden("Not authorized for this course.")

    def perform_create(self, serializer):
        self._check_course(serializer.validated_data['course'])
        quiz = serializer.save()
        AuditLog.record(self.request.user, 'CREATE', quiz, f"Created quiz: {quiz.title}")

    def update(self, request, *args, **kwargs):
        # Questions, settings and limits are all optional on update
        kwargs['partial'] = True
        return super().update(request, *args, **kwargs)

    def perform_update(self, serializer):
        if 'course' in serializer.validated_data:
            self._check_course(serializer.validated_data['course'])
        quiz = serializer.save()
        AuditLog.record(self.request.user, 'UPDATE', quiz, f"Updated quiz: {quiz.title}")

    def create(self, request, *args, **kwargs):
        response = super().create(request, *args, **kwargs)
        return Response({"success": True, "message": "Quiz uploaded successfully.", "quiz": response.data},
                        status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        quiz = self.get_object()
        AuditLog.record(request.user, 'DELETE', quiz, f"Deleted quiz: {quiz.title}")
        counts = services.delete_quiz_cascade(quiz)
        return Response({"success": True, "message": "Quiz and all related scores/attempts deleted.", "deleted": counts})

    @action(detail=True, methods=['patch'], url_path='archive')
    def archive(self, request, pk=None):
        archived = request.data.get('archived')
        if not isinstance(archived, bool):
            raise ValidationError("archived must be boolean (true|false).")
        quiz = self.get_object()
        quiz.archived = archived
        quiz.save(update_fields=['archived', 'updated_at'])
        return Response({"success": True, "quiz": {"id": quiz.pk, "archived": quiz.archived}})
