from django.urls import path
from .views import (
    AttemptResultsView, AttemptStatusView, EssayDetailView, EssayListView, GradeEssayView,
    StudentRollupListView, SubmitAttemptView,
)

urlpatterns = [
    # --- Student quiz flow ---
    path('quizzes/<int:quiz_id>/submit/', SubmitAttemptView.as_view(), name='quiz-submit'),
    path('quizzes/<int:quiz_id>/results/', AttemptResultsView.as_view(), name='quiz-results'),
    path('quiz-attempts/status/', AttemptStatusView.as_view(), name='quiz-attempt-status'),
    path('quiz-attempts/', StudentRollupListView.as_view(), name='quiz-rollups'),

    # --- Teacher essay grading ---
    path('teacher/quiz-essays/', EssayListView.as_view(), name='essay-list'),
    path('teacher/quiz-essays/<int:essay_id>/', EssayDetailView.as_view(), name='essay-detail'),
    path('teacher/quiz-essays/<int:essay_id>/grade/', GradeEssayView.as_view(), name='essay-grade'),
]
