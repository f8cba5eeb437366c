import pytest

from assessments import services
from assessments.models import Attempt, CompletedModule, EssaySubmission, QuizAttemptsRoot
from cores.exceptions import AttemptLimitExceeded, NotFound, ValidationError
from courses.models import Course, Module


@pytest.mark.django_db
class TestSubmitAttempt:
    def test_first_attempt_creates_rollup(self, student, make_quiz):
        quiz = make_quiz(attempts_allowed=3)
        receipt = services.submit_attempt(student, quiz.pk, 8, 10, time_taken_seconds=120)

        assert receipt.attempts_used == 1
        assert receipt.attempts_allowed == 3
        assert receipt.attempts_left == 2

        root = QuizAttemptsRoot.objects.get(user=student, quiz=quiz)
        assert root.attempts_used == 1
        assert root.best_percent == 80
        assert root.last_score_percent == 80
        assert root.best_graded_percent is None
        assert root.course_id == quiz.course_id

        student.refresh_from_db()
        assert student.average_quiz_score == 80

    def test_limit_allows_exactly_k_attempts(self, student, make_quiz):
        quiz = make_quiz(attempts_allowed=2)
        services.submit_attempt(student, quiz.pk, 5, 10)
        receipt = services.submit_attempt(student, quiz.pk, 6, 10)
        assert receipt.attempts_left == 0

        with pytest.raises(AttemptLimitExceeded) as excinfo:
            services.submit_attempt(student, quiz.pk, 10, 10)

        assert excinfo.value.extra['attempts'] == {'used': 2, 'allowed': 2, 'left': 0}
        assert Attempt.objects.filter(root__user=student, root__quiz=quiz).count() == 2
        assert QuizAttemptsRoot.objects.get(user=student, quiz=quiz).best_percent == 60

    def test_unlimited_quiz_never_blocks(self, student, make_quiz):
        quiz = make_quiz(attempts_allowed=None)
        for _ in range(5):
            receipt = services.submit_attempt(student, quiz.pk, 1, 10)
        assert receipt.attempts_used == 5
        assert receipt.attempts_allowed is None
        assert receipt.attempts_left is None

    def test_best_survives_a_worse_retake(self, student, make_quiz):
        quiz = make_quiz()
        services.submit_attempt(student, quiz.pk, 9, 10)
        services.submit_attempt(student, quiz.pk, 3, 10)

        root = QuizAttemptsRoot.objects.get(user=student, quiz=quiz)
        assert root.best_percent == 90
        assert root.last_score_percent == 30
        assert root.last_score == 3
        assert root.last_total == 10

    @pytest.mark.parametrize('score,total', [(11, 10), (-1, 10), (1, -5)])
    def test_bad_scores_are_rejected(self, student, make_quiz, score, total):
        quiz = make_quiz()
        with pytest.raises(ValidationError):
            services.submit_attempt(student, quiz.pk, score, total)
        assert not QuizAttemptsRoot.objects.filter(user=student).exists()

    def test_unknown_quiz(self, student):
        with pytest.raises(NotFound):
            services.submit_attempt(student, 999999, 1, 1)

    def test_essay_answers_create_pending_submissions(self, student, teacher, make_quiz):
        quiz = make_quiz(questions=['Pick one', 'Explain osmosis', 'Explain diffusion'])
        answers = {'0': 'A', 'essay_1': 'Water moves across a membrane.', 'essay_2': '   ', 'essay_x': 'nope'}
        receipt = services.submit_attempt(student, quiz.pk, 1, 1, answers=answers)

        essays = list(EssaySubmission.objects.filter(quiz=quiz))
        assert len(essays) == 1
        essay = essays[0]
        assert essay.question_index == 1
        assert essay.question_text == 'Explain osmosis'
        assert essay.status == EssaySubmission.Status.PENDING
        assert essay.teacher == teacher
        assert essay.attempt_id == receipt.attempt_id
        assert essay.max_score == 10


@pytest.mark.django_db
class TestModuleCompletion:
    def test_passing_attempt_marks_module(self, student, make_quiz, module):
        quiz = make_quiz(passing_percent=60)
        services.submit_attempt(student, quiz.pk, 7, 10)

        marker = CompletedModule.objects.get(user=student, module=module)
        assert marker.percent == 70
        assert marker.quiz == quiz

    def test_failing_attempt_never_removes_marker(self, student, make_quiz, module):
        quiz = make_quiz(passing_percent=60)
        services.submit_attempt(student, quiz.pk, 7, 10)
        services.submit_attempt(student, quiz.pk, 4, 10)

        assert CompletedModule.objects.get(user=student, module=module).percent == 70

    def test_later_pass_refreshes_marker(self, student, make_quiz, module):
        quiz = make_quiz(passing_percent=60)
        services.submit_attempt(student, quiz.pk, 7, 10)
        services.submit_attempt(student, quiz.pk, 9, 10)

        assert CompletedModule.objects.filter(user=student, module=module).count() == 1
        assert CompletedModule.objects.get(user=student, module=module).percent == 90

    def test_platform_default_pass_mark_applies(self, student, make_quiz, module):
        quiz = make_quiz(passing_percent=None)
        services.submit_attempt(student, quiz.pk, 5, 10)
        assert not CompletedModule.objects.filter(user=student).exists()
        services.submit_attempt(student, quiz.pk, 6, 10)
        assert CompletedModule.objects.filter(user=student, module=module).exists()


@pytest.mark.django_db
def test_attempt_status_reports_lock(student, make_quiz):
    limited = make_quiz(title='Limited', attempts_allowed=1)
    open_quiz = make_quiz(title='Open')
    services.submit_attempt(student, limited.pk, 1, 2)

    status = services.attempt_status(student, [limited.pk, open_quiz.pk, 424242])

    assert status[str(limited.pk)] == {'used': 1, 'allowed': 1, 'left': 0, 'lock': True}
    assert status[str(open_quiz.pk)] == {'used': 0, 'allowed': None, 'left': None, 'lock': False}
    assert status['424242']['lock'] is False


@pytest.mark.django_db
def test_attempt_results_numbers_attempts_and_picks_best(student, make_quiz):
    quiz = make_quiz()
    services.submit_attempt(student, quiz.pk, 4, 10)
    services.submit_attempt(student, quiz.pk, 9, 10)
    services.submit_attempt(student, quiz.pk, 6, 10)

    results = services.attempt_results(student, quiz.pk)
    assert [row['attempt'] for row in results['attempts']] == [1, 2, 3]
    assert results['best']['percent'] == 90
    assert results['latest']['percent'] == 60


@pytest.mark.django_db
def test_two_attempt_quiz_end_to_end(student, make_quiz, module):
    quiz = make_quiz(attempts_allowed=2, passing_percent=60)

    first = services.submit_attempt(student, quiz.pk, 5, 10)
    assert (first.attempts_used, first.attempts_left) == (1, 1)
    assert not CompletedModule.objects.filter(user=student).exists()

    second = services.submit_attempt(student, quiz.pk, 7, 10)
    assert (second.attempts_used, second.attempts_left) == (2, 0)
    assert CompletedModule.objects.get(user=student, module=module).percent == 70

    with pytest.raises(AttemptLimitExceeded) as excinfo:
        services.submit_attempt(student, quiz.pk, 10, 10)
    assert excinfo.value.extra['attempts']['left'] == 0
    assert QuizAttemptsRoot.objects.get(user=student, quiz=quiz).attempts_used == 2


@pytest.mark.django_db
class TestSubmittedModuleIds:
    def test_module_of_same_course_is_accepted(self, student, make_quiz, course, module):
        other = Module.objects.create(course=course, title='Tissues', module_number=2)
        quiz = make_quiz(passing_percent=60)
        services.submit_attempt(student, quiz.pk, 8, 10, module_id=other.pk)

        assert CompletedModule.objects.get(user=student).module == other
        assert QuizAttemptsRoot.objects.get(user=student, quiz=quiz).module == other

    def test_unknown_module_is_rejected(self, student, make_quiz):
        quiz = make_quiz()
        with pytest.raises(ValidationError):
            services.submit_attempt(student, quiz.pk, 9, 10, module_id=987654)
        assert not QuizAttemptsRoot.objects.filter(user=student).exists()

    def test_module_from_another_course_is_rejected(self, student, make_quiz, make_user):
        foreign_course = Course.objects.create(title='Other', uploaded_by=make_user('teacher'))
        foreign_module = Module.objects.create(course=foreign_course, title='Elsewhere', module_number=1)
        quiz = make_quiz(passing_percent=60)

        with pytest.raises(ValidationError):
            services.submit_attempt(student, quiz.pk, 9, 10, module_id=foreign_module.pk)
        assert not CompletedModule.objects.filter(module=foreign_module).exists()

    def test_course_always_comes_from_quiz(self, student, make_quiz, make_user, course):
        foreign_course = Course.objects.create(title='Other', uploaded_by=make_user('teacher'))
        quiz = make_quiz()

        with pytest.raises(ValidationError):
            services.submit_attempt(student, quiz.pk, 9, 10, course_id=foreign_course.pk)

        services.submit_attempt(student, quiz.pk, 9, 10, course_id=course.pk)
        assert QuizAttemptsRoot.objects.get(user=student, quiz=quiz).course == course
