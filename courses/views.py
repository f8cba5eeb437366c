from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from assessments.permissions import IsTeacherOrAdmin
from cores.exceptions import Forbidden, ValidationError
from cores.models import AuditLog

from . import services
from .models import Assignment, AssignmentSubmission, Course, Module, ModuleFile, SchoolClass
from .serializers import (
    AssignmentGradeSerializer, AssignmentSerializer, AssignmentSubmissionSerializer,
    CourseSerializer, ModuleFileSerializer, ModuleSerializer, RosterEntrySerializer,
    SchoolClassSerializer,
)


def courses_for(user):
    if user.is_staff or user.role == 'admin':
        return Course.objects.all()
    return Course.objects.filter(Q(uploaded_by=user) | Q(teachers=user)).distinct()


class SchoolClassViewSet(viewsets.ModelViewSet):
    serializer_class = SchoolClassSerializer
    permission_classes = [IsTeacherOrAdmin]

    def get_queryset(self):
        queryset = SchoolClass.objects.all().order_by('-created_at')
        if not (self.request.user.is_staff or self.request.user.role == 'admin'):
            queryset = queryset.filter(teacher=self.request.user)
        if self.request.query_params.get('include_archived') not in ('1', 'true'):
            queryset = queryset.filter(archived=False)
        return queryset

    def perform_create(self, serializer):
        serializer.save(teacher=self.request.user)

    @action(detail=True, methods=['get', 'post'], url_path='students')
    def students(self, request, pk=None):
        school_class = self.get_object()
        if request.method == 'GET':
            roster = school_class.roster.select_related('student').order_by('full_name')
            return Response({"success": True, "students": RosterEntrySerializer(roster, many=True).data})

        result = services.enroll_student(school_class.pk, request.data.get('studentId') or request.data.get('student_id'))
        if not result.already_enrolled:
            AuditLog.record(request.user, 'ENROLL', school_class, f"Enrolled user {result.user_id}")
        return Response(
            {"success": True, "alreadyEnrolled": result.already_enrolled},
            status=status.HTTP_200_OK if result.already_enrolled else status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=['delete'], url_path=r'students/(?P<user_id>\d+)')
    def remove_student(self, request, pk=None, user_id=None):
        school_class = self.get_object()
        services.unenroll_student(school_class.pk, int(user_id))
        return Response({"success": True, "message": "Student removed from class."})


class CourseViewSet(viewsets.ModelViewSet):
    serializer_class = CourseSerializer
    permission_classes = [IsTeacherOrAdmin]

    def get_queryset(self):
        return courses_for(self.request.user).order_by('-created_at')

    def perform_create(self, serializer):
        serializer.save(uploaded_by=self.request.user)

    def perform_destroy(self, instance):
        AuditLog.record(self.request.user, 'DELETE', instance, f"Deleted course {instance.title}")
        services.delete_course(instance)


class ModuleViewSet(viewsets.ModelViewSet):
    serializer_class = ModuleSerializer
    permission_classes = [IsTeacherOrAdmin]
    parser_classes = (JSONParser, MultiPartParser, FormParser)

    def get_queryset(self):
        queryset = Module.objects.filter(course__in=courses_for(self.request.user)).prefetch_related('files')
        course_id = self.request.query_params.get('course')
        if course_id:
            queryset = queryset.filter(course_id=course_id)
        return queryset

    def perform_create(self, serializer):
        course = serializer.validated_data['course']
        if not course.is_taught_by(self.request.user):
            raise Forbidden("Not authorized for this course.")
        serializer.save(module_number=services.next_module_number(course))

    def perform_destroy(self, instance):
        services.delete_module(instance)

    @action(detail=True, methods=['post'], url_path='files')
    def upload_file(self, request, pk=None):
        module = self.get_object()
        uploaded = request.FILES.get('file')
        if not uploaded:
            raise ValidationError("No file uploaded.")
        module_file = services.attach_file(module, uploaded, request.data.get('description', ''))
        return Response({"success": True, "file": ModuleFileSerializer(module_file).data}, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['delete'], url_path=r'files/(?P<file_id>\d+)')
    def delete_file(self, request, pk=None, file_id=None):
        module_file = get_object_or_404(ModuleFile, pk=file_id, module=self.get_object())
        result = services.delete_module_file(module_file)
        return Response({"success": True, "storageCleaned": result.ok})


class AssignmentViewSet(viewsets.ModelViewSet):
    serializer_class = AssignmentSerializer

    def get_permissions(self):
        if self.action in ['list', 'retrieve', 'submit']:
            return [permissions.IsAuthenticated()]
        return [IsTeacherOrAdmin()]

    def get_queryset(self):
        user = self.request.user
        if user.is_teacher:
            queryset = Assignment.objects.filter(course__in=courses_for(user))
        else:
            queryset = Assignment.objects.filter(
                course__assigned_classes__roster__student=user, archived=False,
            ).distinct()
        course_id = self.request.query_params.get('course')
        if course_id:
            queryset = queryset.filter(course_id=course_id)
        return queryset.order_by('title')

    def perform_create(self, serializer):
        if not serializer.validated_data['course'].is_taught_by(self.request.user):
            raise Forbidden("Not authorized for this course.")
        serializer.save()

    @action(detail=True, methods=['post'], url_path='submit')
    def submit(self, request, pk=None):
        assignment = self.get_object()
        submission, _ = AssignmentSubmission.objects.update_or_create(
            assignment=assignment,
            user=request.user,
            defaults={'content': request.data.get('content', ''), 'submitted_at': timezone.now()},
        )
        return Response({"success": True, "submission": AssignmentSubmissionSerializer(submission).data})

    @action(detail=True, methods=['get'], url_path='submissions')
    def submissions(self, request, pk=None):
        assignment = self.get_object()
        rows = assignment.submissions.select_related('user').order_by('-submitted_at')
        return Response({"success": True, "submissions": AssignmentSubmissionSerializer(rows, many=True).data})

    @action(detail=True, methods=['post'], url_path=r'submissions/(?P<submission_id>\d+)/grade')
    def grade(self, request, pk=None, submission_id=None):
        assignment = self.get_object()
        submission = get_object_or_404(AssignmentSubmission, pk=submission_id, assignment=assignment)
        serializer = AssignmentGradeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        submission.grade = serializer.validated_data['grade']
        submission.feedback = serializer.validated_data['feedback']
        submission.graded_at = timezone.now()
        submission.save(update_fields=['grade', 'feedback', 'graded_at'])
        AuditLog.record(request.user, 'GRADE', submission, f"Assignment grade {submission.grade}")
        return Response({"success": True, "submission": AssignmentSubmissionSerializer(submission).data})
