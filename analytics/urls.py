from django.urls import path
from .views import AssignmentAnalyticsView, OverviewAnalyticsView, QuizAnalyticsView, StudentQuizAnalyticsView

urlpatterns = [
    path('teacher/analytics/quizzes/', QuizAnalyticsView.as_view(), name='analytics-quizzes'),
    path('teacher/analytics/assignments/', AssignmentAnalyticsView.as_view(), name='analytics-assignments'),
    path('teacher/analytics/overview/', OverviewAnalyticsView.as_view(), name='analytics-overview'),
    path('student/analytics/quizzes/', StudentQuizAnalyticsView.as_view(), name='analytics-student-quizzes'),
]
