from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Auth, users, platform settings ---
    path('api/', include('users.urls')),
    path('api/', include('cores.urls')),

    # --- Quiz taking and grading (before the quiz router) ---
    path('api/', include('assessments.urls')),
    path('api/', include('quizzes.urls')),

    # --- Classes, courses, modules, assignments ---
    path('api/', include('courses.urls')),

    # --- Reports ---
    path('api/', include('analytics.urls')),
]
