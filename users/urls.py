from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    RegisterView,
    CustomLoginView,
    AdminStatsView,
    StudentListView,
    UserViewSet,
    UserProfileView,
)

router = DefaultRouter()
router.register(r'users', UserViewSet, basename='users')

urlpatterns = [
    # --- Authentication ---
    path('auth/register/', RegisterView.as_view(), name='register'),
    path('auth/login/', CustomLoginView.as_view(), name='login'),

    # --- Dashboards ---
    path('admin/stats/', AdminStatsView.as_view(), name='admin-stats'),
    path('teacher/students/', StudentListView.as_view(), name='teacher-students'),

    path('profile/', UserProfileView.as_view(), name='user-profile'),
    path('', include(router.urls)),
]
