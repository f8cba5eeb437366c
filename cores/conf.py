from django.conf import settings

DEFAULTS = {
    'IN_QUERY_BATCH_SIZE': 10,
    'DELETE_BATCH_SIZE': 400,
    'DEFAULT_PASSING_PERCENT': 60,
    'DEFAULT_QUIZ_DURATION': 30,
    'DEFAULT_ESSAY_MAX_SCORE': 10,
    'ANALYTICS_PASS_THRESHOLD': 75,
    'ANALYTICS_STUDENT_LIMIT': 500,
    'ANALYTICS_QUIZ_LIMIT_PER_STUDENT': 50,
    'ANALYTICS_ASSIGNMENT_LIMIT_PER_STUDENT': 200,
}


def lms_setting(name):
    """Read a tunable from settings.LMS, falling back to the shipped default."""
    overrides = getattr(settings, 'LMS', None) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
