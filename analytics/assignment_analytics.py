"""
Teacher assignment report, the assignment-side twin of quiz_analytics.
"""
import logging
from collections import defaultdict

from cores.conf import lms_setting
from cores.utils import chunked, clamp_pct, mean_pct, percent_of, resolve_legacy_numeric, round_half_up
from courses.models import AssignmentSubmission

from .quiz_analytics import progress_order, sorted_series, student_status
from .scope import count_completed_modules, load_teacher_scope, student_label

logger = logging.getLogger(__name__)

PLACEHOLDER_LABEL = 'No assignments'
LEGACY_MAX_FIELDS = ('maxPoints', 'totalPoints', 'max', 'maxScore')


def resolve_max_points(assignment):
    """Column `points`, else the first positive legacy max in metadata."""
    points = resolve_legacy_numeric(assignment, ['points'])
    if points is None or points <= 0:
        points = resolve_legacy_numeric(getattr(assignment, 'metadata', None) or {}, LEGACY_MAX_FIELDS)
    if points is None or points <= 0:
        return None
    return points


def submission_percent(submission, assignment):
    """
    Normalise a submission's mark to 0-100.

    A stored percent wins. Otherwise grade (or score) is divided by the
    assignment's max points when one resolves, and taken as already being
    a percent when none does. Returns None for ungraded submissions.
    """
    explicit = resolve_legacy_numeric(submission, ['percent'])
    if explicit is not None:
        return clamp_pct(explicit)
    raw = resolve_legacy_numeric(submission, ['grade', 'score'])
    if raw is None:
        return None
    points = resolve_max_points(assignment)
    if points:
        return clamp_pct(raw / points * 100)
    return clamp_pct(raw)


def _submissions_by_assignment(student, assignment_ids):
    found = {}
    for batch in chunked(assignment_ids):
        for submission in AssignmentSubmission.objects.filter(user=student, assignment_id__in=batch):
            found[submission.assignment_id] = submission
    return found


def build_assignment_analytics(teacher_id, class_id=None, pass_threshold=None, limit_students=None):
    pass_threshold = pass_threshold if pass_threshold is not None else lms_setting('ANALYTICS_PASS_THRESHOLD')
    cap = lms_setting('ANALYTICS_ASSIGNMENT_LIMIT_PER_STUDENT')
    scope = load_teacher_scope(
        teacher_id, class_id=class_id, limit_students=limit_students, with_quizzes=False, with_assignments=True,
    )

    titles = {}
    score_sum = defaultdict(int)
    score_count = defaultdict(int)
    submission_count = defaultdict(int)

    rows = []
    grand_completed = 0
    grand_total = 0

    for student in scope.students:
        class_ids = scope.class_ids_for(student)
        course_ids = scope.course_ids_for(class_ids)

        modules_total = scope.modules_total(course_ids)
        modules_completed = count_completed_modules(student, course_ids) if course_ids else 0
        grand_completed += modules_completed
        grand_total += modules_total

        assignments = scope.assignments_for(course_ids)
        for assignment in assignments:
            titles[assignment.pk] = assignment.title or f"Assignment {assignment.pk}"

        considered = assignments[:cap]
        submissions = _submissions_by_assignment(student, [a.pk for a in considered])

        submitted = 0
        on_time = 0
        percents = []
        for assignment in considered:
            submission = submissions.get(assignment.pk)
            if submission is None:
                continue
            submitted += 1
            submission_count[assignment.pk] += 1

            pct = submission_percent(submission, assignment)
            if pct is not None:
                percents.append(pct)
                score_sum[assignment.pk] += pct
                score_count[assignment.pk] += 1

            if assignment.due_at and submission.submitted_at and submission.submitted_at <= assignment.due_at:
                on_time += 1

        avg_score = mean_pct(percents)
        rows.append({
            'className': scope.class_name_for(class_ids),
            'name': student.display_name,
            'studentId': student_label(student),
            'avgAssignmentScore': avg_score,
            'assignmentsSubmitted': submitted,
            'totalAssignments': len(assignments),
            'onTimePct': percent_of(on_time, submitted),
            'modulesCompleted': modules_completed,
            'totalModules': modules_total,
            'timeOnTaskMin': None,
            'status': student_status(avg_score, modules_completed, modules_total, pass_threshold),
        })

    charted = {aid: titles[aid] for aid in titles if aid in submission_count or aid in score_count}
    averages = {aid: round_half_up(score_sum[aid] / score_count[aid]) if score_count.get(aid) else 0 for aid in charted}
    labels, (avg_scores, counts) = sorted_series(charted, averages, dict(submission_count))
    total_assignments = len(labels)
    if not labels:
        labels, avg_scores, counts = [PLACEHOLDER_LABEL], [0], [0]

    return {
        'byAssignment': {'labels': labels, 'avgScores': avg_scores, 'submissions': counts},
        'summary': {
            'totalAssignments': total_assignments,
            'averageAssignmentScore': mean_pct(row['avgAssignmentScore'] for row in rows),
            'onTimeRate': mean_pct(row['onTimePct'] for row in rows),
            'modulesCompleted': grand_completed,
            'totalModules': grand_total,
            'modulesCompletedPct': percent_of(grand_completed, grand_total),
        },
        'progress': progress_order(rows),
    }
