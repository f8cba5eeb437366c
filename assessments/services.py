"""
Quiz attempt recording, essay grading cascade and module completion.

Rollups are never patched in place: every write path re-reads all attempts
for the (user, quiz) pair and runs them through rollup.recompute_rollup.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.utils import timezone

from cores.exceptions import AttemptLimitExceeded, InvalidGrade, NotFound, ValidationError
from cores.models import AuditLog, PlatformSetting
from cores.utils import is_number
from courses.models import Module
from quizzes.models import Quiz
from quizzes.validators import normalize_attempts_allowed

from .models import Attempt, CompletedModule, EssaySubmission, QuizAttemptsRoot
from .rollup import recompute_rollup, rollup_average, score_attempt, sum_graded_essays

logger = logging.getLogger(__name__)

User = get_user_model()

ESSAY_KEY = re.compile(r'^essay_(\d+)$')
GRADE_STATUSES = (EssaySubmission.Status.GRADED, EssaySubmission.Status.NEEDS_REVIEW)


@dataclass(frozen=True)
class AttemptReceipt:
    attempt_id: int
    attempts_used: int
    attempts_allowed: Optional[int]
    attempts_left: Optional[int]

    def as_payload(self):
        return {
            "attemptId": self.attempt_id,
            "attempts": {"used": self.attempts_used, "allowed": self.attempts_allowed, "left": self.attempts_left},
        }


def _attempts_left(allowed, used):
    if allowed is None:
        return None
    return max(0, allowed - used)


def _validate_scores(auto_score, auto_total):
    if not is_number(auto_score) or not is_number(auto_total):
        raise ValidationError("score and total must be numbers.")
    if auto_score < 0 or auto_total < 0:
        raise ValidationError("score and total must not be negative.")
    if auto_score > auto_total:
        raise ValidationError("score cannot exceed total.")


def refresh_rollup(root):
    """Rewrite every derived field of root from its attempts. Caller holds the row lock."""
    fields = recompute_rollup(root.attempts.order_by('submitted_at', 'id'))
    for name, value in fields.as_dict().items():
        setattr(root, name, value)
    root.save()
    return fields


def refresh_user_average(user):
    average = rollup_average(QuizAttemptsRoot.objects.filter(user=user, attempts_used__gt=0))
    average = average if average is not None else 0
    User.objects.filter(pk=user.pk).update(average_quiz_score=average)
    user.average_quiz_score = average
    return average


def mark_module_completed(user, module_id, course_id, quiz, auto_percent, passing_percent):
    """
    Upsert the completion marker when auto_percent reaches the pass mark.

    Only ever creates or refreshes; a lower score never removes a marker.
    Returns the marker, or None when the attempt did not qualify.
    """
    if not module_id or auto_percent < passing_percent:
        return None
    marker, _ = CompletedModule.objects.update_or_create(
        user=user,
        module_id=module_id,
        defaults={
            'course_id': course_id,
            'quiz': quiz,
            'percent': auto_percent,
            'completed_at': timezone.now(),
        },
    )
    return marker


def _course_teacher(course):
    if course is None:
        return None
    if course.uploaded_by_id:
        return course.uploaded_by
    return course.teachers.order_by('id').first()


def _create_essays(user, quiz, attempt, answers, course_id, module_id):
    if not isinstance(answers, dict):
        return []
    questions = list(quiz.questions.all())
    teacher = _course_teacher(quiz.course)
    default_max = PlatformSetting.load().default_essay_max_score

    created = []
    for key, value in answers.items():
        match = ESSAY_KEY.match(str(key))
        text = str(value or '').strip()
        if not match or not text:
            continue
        index = int(match.group(1))
        question_text = questions[index].text if index < len(questions) else ''
        created.append(EssaySubmission.objects.create(
            user=user,
            attempt=attempt,
            quiz=quiz,
            course_id=course_id,
            module_id=module_id,
            teacher=teacher,
            question_index=index,
            question_text=question_text,
            answer=text,
            status=EssaySubmission.Status.PENDING,
            max_score=default_max,
        ))
    return created


def _resolve_module_id(quiz, module_id):
    """The quiz's own module unless the caller names another module of the same course."""
    if module_id is None:
        return quiz.module_id
    resolved = Module.objects.filter(pk=module_id, course_id=quiz.course_id).values_list('pk', flat=True).first()
    if resolved is None:
        raise ValidationError("moduleId does not belong to the quiz's course.")
    return resolved


def submit_attempt(user, quiz_id, auto_score, auto_total, time_taken_seconds=None,
                   answers=None, reason="manual", module_id=None, course_id=None):
    """
    Record one quiz submission for user.

    The attempt-limit check, the insert and the rollup rewrite share one
    transaction that starts by locking the (user, quiz) rollup row, so two
    concurrent submissions cannot both slip under the limit.
    """
    quiz = Quiz.objects.select_related('course').filter(pk=quiz_id).first()
    if quiz is None:
        raise NotFound("Quiz not found.")
    _validate_scores(auto_score, auto_total)

    allowed = normalize_attempts_allowed(quiz.attempts_allowed)
    if course_id is not None and course_id != quiz.course_id:
        raise ValidationError("courseId does not match the quiz's course.")
    course_id = quiz.course_id
    module_id = _resolve_module_id(quiz, module_id)
    passing_percent = quiz.effective_passing_percent()

    with transaction.atomic():
        root, _ = QuizAttemptsRoot.objects.get_or_create(
            user=user, quiz=quiz, defaults={'course_id': course_id, 'module_id': module_id},
        )
        root = QuizAttemptsRoot.objects.select_for_update().get(pk=root.pk)

        used = root.attempts.count()
        if allowed is not None and used >= allowed:
            raise AttemptLimitExceeded(used, allowed)

        scores = score_attempt(auto_score, auto_total)
        attempt = Attempt.objects.create(
            root=root,
            auto_score=auto_score,
            auto_total=auto_total,
            auto_percent=scores.auto_percent,
            graded_score=0,
            graded_total=0,
            graded_percent=0,
            percent=scores.auto_percent,
            submitted_at=timezone.now(),
            time_taken_seconds=time_taken_seconds,
            reason=reason or 'manual',
            answers=answers if isinstance(answers, dict) else {},
        )

        try:
            with transaction.atomic():
                _create_essays(user, quiz, attempt, answers, course_id, module_id)
        except DatabaseError as exc:
            logger.warning("Essay submission creation failed (non-fatal) for attempt %s: %s", attempt.pk, exc)

        root.course_id = course_id
        root.module_id = module_id
        fields = refresh_rollup(root)

        mark_module_completed(user, module_id, course_id, quiz, scores.auto_percent, passing_percent)

    refresh_user_average(user)
    logger.info("Recorded attempt %s for user %s on quiz %s (%s%%)", attempt.pk, user.pk, quiz.pk, scores.auto_percent)

    return AttemptReceipt(
        attempt_id=attempt.pk,
        attempts_used=fields.attempts_used,
        attempts_allowed=allowed,
        attempts_left=_attempts_left(allowed, fields.attempts_used),
    )


def recompute_attempt(attempt):
    """
    Re-derive the graded and composite parts of one attempt from its graded
    essays, then its rollup and its owner's average.
    """
    default_max = PlatformSetting.load().default_essay_max_score
    with transaction.atomic():
        root = QuizAttemptsRoot.objects.select_for_update().get(pk=attempt.root_id)
        attempt = Attempt.objects.get(pk=attempt.pk)

        graded_score, graded_total = sum_graded_essays(attempt.essays.all(), default_max=default_max)
        scores = score_attempt(attempt.auto_score, attempt.auto_total, graded_score, graded_total)

        attempt.auto_percent = scores.auto_percent
        attempt.graded_score = scores.graded_score
        attempt.graded_total = scores.graded_total
        attempt.graded_percent = scores.graded_percent
        attempt.percent = scores.percent
        attempt.save(update_fields=[
            'auto_percent', 'graded_score', 'graded_total', 'graded_percent', 'percent', 'updated_at',
        ])

        refresh_rollup(root)

    refresh_user_average(root.user)
    return attempt


def grade_essay(essay_id, score, max_score, feedback="", status="graded", grader=None):
    """
    Apply a manual grade and cascade it into the attempt, rollup and user average.

    A re-grade replaces the previous score; totals are re-summed from scratch.
    """
    if not is_number(score) or score < 0:
        raise InvalidGrade("score must be a number >= 0.")
    if not is_number(max_score) or max_score <= 0:
        raise InvalidGrade("maxScore must be a number > 0.")
    if status not in GRADE_STATUSES:
        raise InvalidGrade("status must be 'graded' or 'needs_review'.")

    essay = EssaySubmission.objects.select_related('attempt').filter(pk=essay_id).first()
    if essay is None:
        raise NotFound("Essay submission not found.")

    essay.score = score
    essay.max_score = max_score
    essay.feedback = feedback or ''
    essay.status = status
    essay.graded_at = timezone.now()
    essay.graded_by = grader
    essay.save(update_fields=['score', 'max_score', 'feedback', 'status', 'graded_at', 'graded_by'])

    if essay.attempt_id:
        recompute_attempt(essay.attempt)
    else:
        logger.warning("Essay %s has no attempt back-reference; cascade skipped", essay.pk)

    if grader is not None:
        AuditLog.record(grader, 'GRADE', essay, f"Essay graded {score}/{max_score} ({status})")
    return essay


def attempt_status(user, quiz_ids):
    """Live {used, allowed, left, lock} per quiz id; unknown quizzes come back unlocked."""
    out = {}
    for quiz_id in quiz_ids:
        quiz = Quiz.objects.filter(pk=quiz_id).first()
        if quiz is None:
            out[str(quiz_id)] = {"used": 0, "allowed": None, "left": None, "lock": False}
            continue
        allowed = normalize_attempts_allowed(quiz.attempts_allowed)
        used = Attempt.objects.filter(root__user=user, root__quiz=quiz).count()
        left = _attempts_left(allowed, used)
        out[str(quiz_id)] = {"used": used, "allowed": allowed, "left": left, "lock": allowed is not None and left == 0}
    return out


def _attempt_row(number, attempt):
    return {
        "attempt": number,
        "attemptId": attempt.pk,
        "submittedAt": attempt.submitted_at,
        "timeTakenSeconds": attempt.time_taken_seconds,
        "reason": attempt.reason,
        "score": attempt.auto_score + attempt.graded_score,
        "total": attempt.auto_total + attempt.graded_total,
        "percent": attempt.percent,
        "autoScore": attempt.auto_score,
        "autoTotal": attempt.auto_total,
        "autoPercent": attempt.auto_percent,
        "gradedScore": attempt.graded_score,
        "gradedTotal": attempt.graded_total,
        "gradedPercent": attempt.graded_percent,
    }


def attempt_results(user, quiz_id):
    attempts = Attempt.objects.filter(root__user=user, root__quiz_id=quiz_id).order_by('submitted_at', 'id')
    rows = [_attempt_row(number, attempt) for number, attempt in enumerate(attempts, start=1)]

    best = None
    for row in rows:
        if best is None or row["percent"] > best["percent"]:
            best = row
    return {"attempts": rows, "best": best, "latest": rows[-1] if rows else None}
