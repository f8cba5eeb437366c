"""
Teacher quiz report: best-of-N per quiz per student, per-quiz on-time rate,
and sum-of-sums module completion.
"""
import logging
from collections import defaultdict

from assessments.models import Attempt
from assessments.rollup import composite_percent
from cores.conf import lms_setting
from cores.utils import chunked, mean_pct, percent_of, round_half_up

from .scope import count_completed_modules, load_teacher_scope, student_label

logger = logging.getLogger(__name__)

ON_TRACK = 'On Track'
AT_RISK = 'At Risk'


def student_status(avg_score, modules_completed, modules_total, pass_threshold):
    completion = percent_of(modules_completed, modules_total)
    if avg_score < pass_threshold or completion < 50:
        return AT_RISK
    return ON_TRACK


def sorted_series(titles, *series):
    """Order chart series by human-readable title."""
    keys = sorted(titles, key=lambda key: (titles[key].casefold(), str(key)))
    return [titles[k] for k in keys], [[values.get(k, 0) for k in keys] for values in series]


def progress_order(rows):
    return sorted(rows, key=lambda row: (row['className'].casefold(), row['name'].casefold()))


def _attempts_by_quiz(student, quiz_ids):
    grouped = defaultdict(list)
    for batch in chunked(quiz_ids):
        attempts = Attempt.objects.filter(root__user=student, root__quiz_id__in=batch).select_related('root')
        for attempt in attempts:
            grouped[attempt.root.quiz_id].append(attempt)
    return grouped


def _quiz_title(quiz):
    return quiz.title or f"Quiz {quiz.pk}"


def best_and_on_time(attempts, due_at):
    """(best composite percent, whether any attempt landed by due_at)."""
    best = None
    on_time = False
    for attempt in attempts:
        pct = composite_percent(attempt)
        if best is None or pct > best:
            best = pct
        if due_at and attempt.submitted_at and attempt.submitted_at <= due_at:
            on_time = True
    return best, on_time


def build_quiz_analytics(teacher_id, class_id=None, pass_threshold=None, limit_students=None):
    pass_threshold = pass_threshold if pass_threshold is not None else lms_setting('ANALYTICS_PASS_THRESHOLD')
    quiz_cap = lms_setting('ANALYTICS_QUIZ_LIMIT_PER_STUDENT')
    scope = load_teacher_scope(teacher_id, class_id=class_id, limit_students=limit_students)

    titles = {}
    score_sum = defaultdict(int)
    score_count = defaultdict(int)
    attempt_count = defaultdict(int)

    rows = []
    grand_completed = 0
    grand_total = 0
    pass_count = 0

    for student in scope.students:
        class_ids = scope.class_ids_for(student)
        course_ids = scope.course_ids_for(class_ids)

        modules_total = scope.modules_total(course_ids)
        modules_completed = count_completed_modules(student, course_ids) if course_ids else 0
        grand_completed += modules_completed
        grand_total += modules_total

        quizzes = scope.quizzes_for(course_ids)
        for quiz in quizzes:
            titles[quiz.pk] = _quiz_title(quiz)

        considered = quizzes[:quiz_cap]
        attempts_by_quiz = _attempts_by_quiz(student, [q.pk for q in considered])

        taken = 0
        with_due = 0
        on_time_hits = 0
        bests = []
        for quiz in considered:
            attempts = attempts_by_quiz.get(quiz.pk)
            if not attempts:
                continue
            taken += 1
            attempt_count[quiz.pk] += len(attempts)

            best, on_time = best_and_on_time(attempts, quiz.due_at)
            # Counted once per quiz, however many attempts it took
            if quiz.due_at:
                with_due += 1
                if on_time:
                    on_time_hits += 1
            if best is not None:
                bests.append(best)
                score_sum[quiz.pk] += best
                score_count[quiz.pk] += 1

        avg_score = mean_pct(bests)
        if avg_score >= pass_threshold:
            pass_count += 1

        rows.append({
            'className': scope.class_name_for(class_ids),
            'name': student.display_name,
            'studentId': student_label(student),
            'avgQuizScore': avg_score,
            'quizzesTaken': taken,
            'totalQuizzes': len(quizzes),
            'onTimePct': percent_of(on_time_hits, with_due),
            'modulesCompleted': modules_completed,
            'totalModules': modules_total,
            'timeOnTaskMin': None,
            'status': student_status(avg_score, modules_completed, modules_total, pass_threshold),
        })

    charted = {qid: titles[qid] for qid in titles if qid in attempt_count or qid in score_count}
    averages = {qid: round_half_up(score_sum[qid] / score_count[qid]) if score_count.get(qid) else 0 for qid in charted}
    labels, (avg_scores, attempts) = sorted_series(charted, averages, dict(attempt_count))

    logger.debug("Quiz analytics for teacher %s: %s students, %s quizzes", teacher_id, len(rows), len(labels))
    return {
        'byQuiz': {'labels': labels, 'avgScores': avg_scores, 'attempts': attempts},
        'summary': {
            'totalQuizzes': len(labels),
            'averageQuizScore': mean_pct(row['avgQuizScore'] for row in rows),
            'passRate': percent_of(pass_count, len(rows)),
            'modulesCompleted': grand_completed,
            'totalModules': grand_total,
            'modulesCompletedPct': percent_of(grand_completed, grand_total),
        },
        'progress': progress_order(rows),
    }
