import logging
from types import SimpleNamespace
from unittest import mock

import pytest
from django.db import DatabaseError

from assessments import services as attempt_services
from assessments.models import Attempt, EssaySubmission, QuizAttemptsRoot
from cores.exceptions import ValidationError
from cores.queries import delete_in_chunks, fetch_ordered, sort_rows
from quizzes.models import Question, Quiz
from quizzes.services import clean_questions, delete_quiz_cascade
from quizzes.validators import normalize_attempts_allowed, normalize_passing_percent, normalize_settings


class TestSettingsNormalisation:
    def test_defaults(self):
        assert normalize_settings(None) == {
            'timerEnabled': False,
            'shuffleQuestions': True,
            'pagination': {'enabled': False, 'perPage': 1},
            'backtrackingAllowed': True,
        }

    def test_timer_fields_only_when_enabled(self):
        out = normalize_settings({'timerEnabled': True, 'durationMinutes': '15', 'graceSeconds': 30})
        assert out['durationMs'] == 15 * 60 * 1000
        assert out['graceMs'] == 30000

        off = normalize_settings({'timerEnabled': False, 'durationMinutes': 'junk'})
        assert 'durationMinutes' not in off

    @pytest.mark.parametrize('raw', [
        {'timerEnabled': True},
        {'timerEnabled': True, 'durationMinutes': 0},
        {'timerEnabled': True, 'durationMinutes': 5, 'graceSeconds': -1},
    ])
    def test_bad_timer_is_rejected(self, raw):
        with pytest.raises(ValidationError):
            normalize_settings(raw)

    def test_missing_duration_takes_default(self):
        out = normalize_settings({'timerEnabled': True}, default_duration=30)
        assert out['durationMinutes'] == 30
        assert out['durationMs'] == 30 * 60 * 1000

        with pytest.raises(ValidationError):
            normalize_settings({'timerEnabled': True, 'durationMinutes': 0}, default_duration=30)

    def test_per_page_floor(self):
        out = normalize_settings({'pagination': {'enabled': True, 'perPage': 0}, 'shuffleQuestions': False})
        assert out['pagination'] == {'enabled': True, 'perPage': 1}
        assert out['shuffleQuestions'] is False

    @pytest.mark.parametrize('raw,expected', [(None, None), ('', None), (0, None), ('3', 3), (5, 5)])
    def test_attempts_allowed(self, raw, expected):
        assert normalize_attempts_allowed(raw) == expected

    @pytest.mark.parametrize('raw', [-1, 'many', True])
    def test_attempts_allowed_rejects(self, raw):
        with pytest.raises(ValidationError):
            normalize_attempts_allowed(raw)

    def test_passing_percent_range(self):
        assert normalize_passing_percent('75') == 75
        with pytest.raises(ValidationError):
            normalize_passing_percent(101)


def test_clean_questions_drops_blank_entries():
    cleaned = clean_questions([
        {'question': 'Q1', 'choices': {'A': 'x', 'B': 'y'}, 'correct': 'A'},
        {'question': '   '},
        'not a dict',
        {'question': 'Essay', 'correctAnswer': None},
    ])
    assert [q['text'] for q in cleaned] == ['Q1', 'Essay']
    assert cleaned[0]['correct_answer'] == 'A'
    assert cleaned[1]['choices'] == {}


def test_sort_rows_puts_missing_values_last():
    class Row:
        def __init__(self, created_at):
            self.created_at = created_at

    assert [r.created_at for r in sort_rows([Row(2), Row(None), Row(5)], ['created_at'])] == [2, 5, None]
    assert [r.created_at for r in sort_rows([Row(2), Row(None), Row(5)], ['-created_at'])] == [5, 2, None]


@pytest.mark.django_db
def test_fetch_ordered_sorts_in_memory_when_query_fails(caplog):
    rows = [SimpleNamespace(created_at=3, pk=1), SimpleNamespace(created_at=None, pk=2), SimpleNamespace(created_at=7, pk=3)]
    queryset = mock.MagicMock()
    queryset.order_by.side_effect = DatabaseError('index missing')
    queryset.__iter__.return_value = iter(rows)

    with caplog.at_level(logging.WARNING, logger='cores.queries'):
        result = fetch_ordered(queryset, '-created_at', label='essays')

    assert [row.pk for row in result] == [3, 1, 2]
    assert '[essays] ordered query failed' in caplog.text


@pytest.mark.django_db
def test_delete_in_chunks_loops_until_empty(make_quiz):
    quiz = make_quiz(questions=[f"Q{i}" for i in range(7)])
    deleted = delete_in_chunks(Question.objects.filter(quiz=quiz), chunk_size=3)
    assert deleted == 7
    assert not Question.objects.filter(quiz=quiz).exists()


@pytest.mark.django_db
def test_delete_quiz_cascade_removes_everything(settings, make_user, make_quiz):
    settings.LMS = {**settings.LMS, 'DELETE_BATCH_SIZE': 2}
    quiz = make_quiz(questions=['MCQ', 'Essay'])
    other = make_quiz(title='Other')
    students = [make_user('student') for _ in range(3)]
    for user in students:
        attempt_services.submit_attempt(user, quiz.pk, 1, 2, answers={'essay_1': 'text'})
        attempt_services.submit_attempt(user, quiz.pk, 2, 2)
    attempt_services.submit_attempt(students[0], other.pk, 1, 1)

    counts = delete_quiz_cascade(quiz)

    assert counts == {'questions': 2, 'essays': 3, 'attempts': 6, 'rollups': 3}
    assert not Quiz.objects.filter(pk=quiz.pk).exists()
    assert not EssaySubmission.objects.filter(quiz_id=quiz.pk).exists()
    assert not Attempt.objects.filter(root__quiz_id=quiz.pk).exists()
    assert QuizAttemptsRoot.objects.filter(quiz=other).count() == 1
