from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import AssignmentViewSet, CourseViewSet, ModuleViewSet, SchoolClassViewSet

router = DefaultRouter()
router.register(r'classes', SchoolClassViewSet, basename='classes')
router.register(r'courses', CourseViewSet, basename='courses')
router.register(r'modules', ModuleViewSet, basename='modules')
router.register(r'assignments', AssignmentViewSet, basename='assignments')

urlpatterns = [
    path('', include(router.urls)),
]
