import pytest
from django.contrib.auth import get_user_model

from assessments import services
from assessments.models import Attempt, CompletedModule, EssaySubmission
from cores import crypto
from cores.models import AuditLog
from courses.models import Course, Module, RosterEntry
from courses.services import enroll_student
from quizzes.models import Quiz

from .conftest import tampered

pytestmark = pytest.mark.django_db


def test_submit_endpoint_reports_attempts(client_for, enrolled_student, make_quiz):
    quiz = make_quiz(attempts_allowed=1)
    client = client_for(enrolled_student)

    first = client.post(f"/api/quizzes/{quiz.pk}/submit/", {'score': 3, 'total': 4}, format='json')
    assert first.status_code == 201
    assert first.data['attempts'] == {'used': 1, 'allowed': 1, 'left': 0}

    second = client.post(f"/api/quizzes/{quiz.pk}/submit/", {'score': 4, 'total': 4}, format='json')
    assert second.status_code == 403
    assert second.data['success'] is False
    assert second.data['message'] == 'Attempt limit reached (1).'
    assert second.data['attempts'] == {'used': 1, 'allowed': 1, 'left': 0}


def test_submit_rejects_score_above_total(client_for, student, make_quiz):
    quiz = make_quiz()
    response = client_for(student).post(f"/api/quizzes/{quiz.pk}/submit/", {'score': 5, 'total': 4}, format='json')
    assert response.status_code == 400
    assert response.data['success'] is False


def test_submit_requires_login(api_client, make_quiz):
    quiz = make_quiz()
    response = api_client.post(f"/api/quizzes/{quiz.pk}/submit/", {'score': 1, 'total': 1}, format='json')
    assert response.status_code == 401


@pytest.mark.parametrize('foreign', [True, False])
def test_submit_rejects_module_outside_quiz_course(client_for, student, make_quiz, make_user, foreign):
    quiz = make_quiz()
    if foreign:
        other_course = Course.objects.create(title='Other', uploaded_by=make_user('teacher'))
        module_id = Module.objects.create(course=other_course, title='Elsewhere', module_number=1).pk
    else:
        module_id = 987654

    response = client_for(student).post(
        f"/api/quizzes/{quiz.pk}/submit/", {'score': 9, 'total': 10, 'moduleId': module_id}, format='json',
    )

    assert response.status_code == 400
    assert response.data['success'] is False
    assert not Attempt.objects.filter(root__user=student).exists()
    assert not CompletedModule.objects.filter(user=student).exists()


def test_teacher_grades_essay_in_scope(client_for, teacher, student, make_quiz):
    quiz = make_quiz(questions=['MCQ', 'Essay'])
    services.submit_attempt(student, quiz.pk, 1, 1, answers={'essay_1': 'An answer'})
    essay = EssaySubmission.objects.get(quiz=quiz)
    client = client_for(teacher)

    listing = client.get('/api/teacher/quiz-essays/', {'status': 'pending'})
    assert listing.status_code == 200
    assert listing.data['total'] == 1
    assert listing.data['items'][0]['questionTitle'] == 'Essay #2'

    graded = client.post(f"/api/teacher/quiz-essays/{essay.pk}/grade/", {'score': 8, 'maxScore': 10}, format='json')
    assert graded.status_code == 200
    assert graded.data['essay']['status'] == 'graded'


def test_essay_outside_teacher_scope_is_forbidden(client_for, make_user, student, make_quiz):
    quiz = make_quiz(questions=['MCQ', 'Essay'])
    services.submit_attempt(student, quiz.pk, 1, 1, answers={'essay_1': 'An answer'})
    essay = EssaySubmission.objects.get(quiz=quiz)
    outsider = client_for(make_user('teacher'))

    assert outsider.get(f"/api/teacher/quiz-essays/{essay.pk}/").status_code == 403
    response = outsider.post(f"/api/teacher/quiz-essays/{essay.pk}/grade/", {'score': 8, 'maxScore': 10}, format='json')
    assert response.status_code == 403
    assert EssaySubmission.objects.get(pk=essay.pk).status == EssaySubmission.Status.PENDING


def test_students_cannot_reach_teacher_endpoints(client_for, student):
    client = client_for(student)
    assert client.get('/api/teacher/quiz-essays/').status_code == 403
    assert client.get('/api/teacher/analytics/quizzes/').status_code == 403


def test_teacher_analytics_endpoints(client_for, teacher, enrolled_student, make_quiz):
    quiz = make_quiz(title='Cells quiz')
    services.submit_attempt(enrolled_student, quiz.pk, 8, 10)
    client = client_for(teacher)

    quizzes = client.get('/api/teacher/analytics/quizzes/')
    assert quizzes.status_code == 200
    assert quizzes.data['byQuiz']['labels'] == ['Cells quiz']

    assignments = client.get('/api/teacher/analytics/assignments/')
    assert assignments.status_code == 200
    assert assignments.data['summary']['totalAssignments'] == 0

    assert client.get('/api/teacher/analytics/overview/').status_code == 200
    assert client.get('/api/teacher/analytics/quizzes/', {'classId': 'abc'}).status_code == 400


def test_create_and_delete_quiz(client_for, teacher, course):
    client = client_for(teacher)
    payload = {
        'course': course.pk,
        'title': 'Photosynthesis',
        'attempts_allowed': 0,
        'settings': {'timerEnabled': True, 'durationMinutes': 10},
        'questions': [{'question': 'What do leaves make?', 'choices': {'A': 'Sugar'}, 'correct': 'A'}],
    }
    created = client.post('/api/quizzes/', payload, format='json')
    assert created.status_code == 201
    quiz = Quiz.objects.get(title='Photosynthesis')
    assert quiz.attempts_allowed is None
    assert quiz.settings['durationMs'] == 600000
    assert quiz.questions.count() == 1

    deleted = client.delete(f"/api/quizzes/{quiz.pk}/")
    assert deleted.status_code == 200
    assert deleted.data['deleted']['questions'] == 1
    assert not Quiz.objects.filter(pk=quiz.pk).exists()


def test_create_quiz_without_questions_fails(client_for, teacher, course):
    response = client_for(teacher).post('/api/quizzes/', {'course': course.pk, 'title': 'Empty'}, format='json')
    assert response.status_code == 400
    assert response.data['success'] is False


def test_enroll_via_class_endpoint(client_for, teacher, student, school_class):
    client = client_for(teacher)
    url = f"/api/classes/{school_class.pk}/students/"

    first = client.post(url, {'studentId': student.student_id}, format='json')
    again = client.post(url, {'studentId': student.student_id}, format='json')

    assert first.status_code == 201
    assert again.status_code == 200
    assert again.data['alreadyEnrolled'] is True
    assert RosterEntry.objects.filter(school_class=school_class).count() == 1
    assert AuditLog.objects.filter(action='ENROLL').count() == 1


def test_register_encrypts_names(api_client):
    response = api_client.post('/api/auth/register/', {
        'username': 'newkid',
        'email': 'newkid@example.org',
        'password': 'longenough1',
        'first_name': 'Nina',
        'last_name': 'Cruz',
    }, format='json')
    assert response.status_code == 201

    user = get_user_model().objects.get(email='newkid@example.org')
    assert user.role == 'student'
    assert user.first_name_enc and 'Nina' not in user.first_name_enc
    assert user.display_name == 'Nina Cruz'


def test_platform_settings_drive_default_pass_mark(client_for, make_user, student, make_quiz, module):
    admin = client_for(make_user('admin', is_staff=True))
    response = admin.put('/api/admin/platform-settings/', {'default_pass_mark': 80}, format='json')
    assert response.status_code == 200
    assert response.data['settings']['default_pass_mark'] == 80
    assert AuditLog.objects.filter(action='SETTINGS').exists()

    quiz = make_quiz(passing_percent=None)
    services.submit_attempt(student, quiz.pk, 7, 10)
    assert not CompletedModule.objects.filter(user=student).exists()

    logs = admin.get('/api/admin/audit-logs/', {'action': 'settings'})
    assert logs.status_code == 200


def test_platform_settings_reject_bad_pass_mark(client_for, make_user):
    admin = client_for(make_user('admin', is_staff=True))
    response = admin.put('/api/admin/platform-settings/', {'default_pass_mark': 120}, format='json')
    assert response.status_code == 400
    assert response.data['success'] is False


def test_timer_without_duration_uses_platform_default(client_for, make_user, teacher, course):
    admin = client_for(make_user('admin', is_staff=True))
    assert admin.put('/api/admin/platform-settings/', {'default_quiz_duration': 45}, format='json').status_code == 200

    payload = {
        'course': course.pk,
        'title': 'Timed',
        'settings': {'timerEnabled': True},
        'questions': [{'question': 'Name a planet.'}],
    }
    response = client_for(teacher).post('/api/quizzes/', payload, format='json')

    assert response.status_code == 201
    assert Quiz.objects.get(title='Timed').settings['durationMinutes'] == 45


def test_roster_listing_survives_unreadable_name(client_for, teacher, make_user, school_class):
    readable = make_user('student', first_name_enc=crypto.encrypt('Jose'), last_name_enc=crypto.encrypt('Rizal'))
    broken = make_user('student', first_name='Grace', first_name_enc=tampered('Grace'))
    for user in (readable, broken):
        enroll_student(school_class.pk, user.student_id)

    response = client_for(teacher).get(f"/api/classes/{school_class.pk}/students/")

    assert response.status_code == 200
    assert sorted(row['name'] for row in response.data['students']) == ['Grace', 'Jose Rizal']


def test_negative_student_limit_is_clamped(client_for, teacher, make_user, school_class):
    for _ in range(3):
        enroll_student(school_class.pk, make_user('student').student_id)

    response = client_for(teacher).get('/api/teacher/analytics/quizzes/', {'limitStudents': -5})

    assert response.status_code == 200
    assert len(response.data['progress']) == 1
