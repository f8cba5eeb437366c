import itertools

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from cores import crypto
from courses.models import Course, Module, SchoolClass
from courses.services import enroll_student
from quizzes.models import Question, Quiz

User = get_user_model()

TEST_KEY = '00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff'


def tampered(plain):
    """A name token that no longer authenticates under TEST_KEY."""
    cipher_hex, iv_hex = crypto.encrypt(plain).split(':')
    return f"{format(int(cipher_hex[0], 16) ^ 1, 'x')}{cipher_hex[1:]}:{iv_hex}"


@pytest.fixture(autouse=True)
def pii_key(settings):
    settings.PII_ENC_KEYS = [TEST_KEY]
    settings.PII_ENC_KEY = ''
    # PlatformSetting.load() caches across tests otherwise
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def make(role='student', **extra):
        n = next(counter)
        if role == 'student':
            extra.setdefault('student_id', f"S{n:04d}")
        return User.objects.create_user(
            username=f"{role}{n}",
            email=f"{role}{n}@example.org",
            password='pass12345',
            role=role,
            **extra,
        )
    return make


@pytest.fixture
def teacher(make_user):
    return make_user('teacher', first_name='Tess', last_name='Teacher')


@pytest.fixture
def student(make_user):
    return make_user('student', first_name='Ada', last_name='Lovelace')


@pytest.fixture
def school_class(teacher):
    return SchoolClass.objects.create(teacher=teacher, name='Grade 7 - Rizal', grade_level='7', section='Rizal')


@pytest.fixture
def course(teacher, school_class):
    course = Course.objects.create(title='Science 7', uploaded_by=teacher)
    course.assigned_classes.add(school_class)
    return course


@pytest.fixture
def module(course):
    return Module.objects.create(course=course, title='Cells', module_number=1)


@pytest.fixture
def enrolled_student(student, school_class):
    enroll_student(school_class.pk, student.student_id)
    return student


@pytest.fixture
def make_quiz(course, module):
    def make(questions=None, **fields):
        fields.setdefault('title', 'Quiz')
        fields.setdefault('course', course)
        fields.setdefault('module', module)
        quiz = Quiz.objects.create(**fields)
        for position, text in enumerate(questions or ['What is a cell?']):
            Question.objects.create(quiz=quiz, index=position, text=text)
        return quiz
    return make


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    def login(user):
        api_client.force_authenticate(user=user)
        return api_client
    return login
