from rest_framework import generics, permissions, viewsets
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView
from django.contrib.auth import get_user_model

from assessments.models import EssaySubmission
from assessments.permissions import IsTeacherOrAdmin
from cores.models import AuditLog
from courses.models import Course
from quizzes.models import Quiz

from .serializers import (
    RegisterSerializer,
    CustomTokenObtainPairSerializer,
    StudentListSerializer,
    UserSerializer,
)

User = get_user_model()


class UserViewSet(viewsets.ModelViewSet):
    """Admin-only user management, audit logged."""
    queryset = User.objects.all().order_by('-date_joined')
    permission_classes = [permissions.IsAdminUser]

    def get_serializer_class(self):
        if self.action == 'create':
            return RegisterSerializer
        return UserSerializer

    def perform_create(self, serializer):
        user = serializer.save()
        AuditLog.record(self.request.user, 'CREATE', user, f"Created new user: {user.email} (Role: {user.role})")

    def perform_update(self, serializer):
        user = serializer.save()
        role = self.request.data.get('role')
        if role in User.Role.values:
            user.role = role
        if self.request.data.get('password'):
            user.set_password(self.request.data['password'])
        user.save()
        AuditLog.record(self.request.user, 'UPDATE', user, f"Updated profile for: {user.email}")

    def perform_destroy(self, instance):
        AuditLog.record(self.request.user, 'DELETE', instance, f"Deleted user account: {instance.email}")
        instance.delete()


class RegisterView(generics.CreateAPIView):
    serializer_class = RegisterSerializer
    permission_classes = [permissions.AllowAny]

    def perform_create(self, serializer):
        # Self-registration always yields a student; staff roles go through UserViewSet
        serializer.save(role=User.Role.STUDENT)


class CustomLoginView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class AdminStatsView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def get(self, request):
        return Response({
            "success": True,
            "total_courses": Course.objects.count(),
            "total_quizzes": Quiz.objects.filter(archived=False).count(),
            "total_students": User.objects.filter(role=User.Role.STUDENT).count(),
            "pending_grading": EssaySubmission.objects.filter(status=EssaySubmission.Status.PENDING).count(),
        })


class StudentListView(generics.ListAPIView):
    serializer_class = StudentListSerializer
    permission_classes = [IsTeacherOrAdmin]

    def get_queryset(self):
        return User.objects.filter(role=User.Role.STUDENT).order_by('-date_joined')


class UserProfileView(generics.RetrieveUpdateAPIView):
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        return self.request.user
