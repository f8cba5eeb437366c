from django.utils import timezone

from assessments.models import Attempt, CompletedModule, QuizAttemptsRoot
from assessments.rollup import rollup_average
from cores.conf import lms_setting
from cores.utils import chunked, clamp_pct, is_number, mean_pct, percent_of, round_half_up

from .quiz_analytics import student_status
from .scope import count_completed_modules, load_teacher_scope, student_label

GRADE_BUCKETS = ['0-59', '60-69', '70-79', '80-89', '90-100']
TIME_ON_TASK_QUIZ_LIMIT = 12


def grade_bucket(pct):
    value = clamp_pct(pct)
    if value < 60:
        return 0
    if value < 70:
        return 1
    if value < 80:
        return 2
    if value < 90:
        return 3
    return 4


def _time_on_task_minutes(student, quiz_ids):
    seconds = []
    for batch in chunked(quiz_ids):
        seconds.extend(
            t for t in Attempt.objects.filter(root__user=student, root__quiz_id__in=batch)
            .values_list('time_taken_seconds', flat=True)
            if t
        )
    if not seconds:
        return 0
    return round_half_up(sum(seconds) / len(seconds) / 60)


def build_overview_analytics(teacher_id, class_id=None, limit_students=None, pass_threshold=None):
    """
    Class overview: grade distribution over stored user averages, per-class
    share of students with at least one completed module, time on task.
    """
    pass_threshold = pass_threshold if pass_threshold is not None else lms_setting('ANALYTICS_PASS_THRESHOLD')
    scope = load_teacher_scope(teacher_id, class_id=class_id, limit_students=limit_students)

    buckets = [0] * len(GRADE_BUCKETS)
    students_out = []
    for student in scope.students:
        course_ids = scope.course_ids_for(scope.class_ids_for(student))
        modules_total = scope.modules_total(course_ids)
        modules_completed = count_completed_modules(student, course_ids) if course_ids else 0

        avg_score = student.average_quiz_score if is_number(student.average_quiz_score) else 0
        buckets[grade_bucket(avg_score)] += 1

        quiz_ids = [q.pk for q in scope.quizzes_for(course_ids)][:TIME_ON_TASK_QUIZ_LIMIT]
        students_out.append({
            'studentId': student_label(student),
            'userId': student.pk,
            'name': student.display_name,
            'avgScore': avg_score,
            'modulesCompleted': modules_completed,
            'modulesTotal': modules_total,
            'timeOnTaskMin': _time_on_task_minutes(student, quiz_ids),
            'status': student_status(avg_score, modules_completed, modules_total, pass_threshold),
        })

    students_by_id = {s.pk: s for s in scope.students}
    completion_labels = []
    completion_data = []
    total_students = 0
    for school_class in scope.classes:
        roster = scope.roster_by_class.get(school_class.pk, set())
        total_students += school_class.students or len(roster)
        class_courses = scope.class_course_ids.get(school_class.pk, [])
        completed = 0
        for user_id in roster:
            if user_id in students_by_id and class_courses and CompletedModule.objects.filter(
                user_id=user_id, course_id__in=class_courses,
            ).exists():
                completed += 1
        completion_labels.append(school_class.display_name)
        completion_data.append(percent_of(completed, len(roster)))

    total_completed = sum(s['modulesCompleted'] for s in students_out)
    total_available = sum(s['modulesTotal'] for s in students_out)
    return {
        'summary': {
            'avgScore': mean_pct(s['avgScore'] for s in students_out),
            'overallCompletion': percent_of(total_completed, total_available),
            'totalStudents': total_students,
        },
        'charts': {
            'gradeDistribution': {
                'labels': GRADE_BUCKETS,
                'datasets': [{'label': 'Students', 'data': buckets}],
            },
            'completionRate': {
                'labels': completion_labels,
                'datasets': [{'label': '% Completion', 'data': completion_data}],
            },
        },
        'students': sorted(students_out, key=lambda s: s['name'].casefold()),
    }


def build_student_quiz_analytics(student, course_id=None):
    """A student's own per-quiz bests. Quizzes not yet published are left out."""
    now = timezone.now()
    rollups = (
        QuizAttemptsRoot.objects.filter(user=student, attempts_used__gt=0)
        .select_related('quiz')
        .order_by('quiz__title', 'pk')
    )
    if course_id:
        rollups = rollups.filter(quiz__course_id=course_id)

    visible = [r for r in rollups if not (r.quiz.publish_at and r.quiz.publish_at > now)]
    per_quiz = []
    for rollup in visible:
        best = rollup_average([rollup])
        per_quiz.append({
            'quizId': rollup.quiz_id,
            'title': rollup.quiz.title or f"Quiz {rollup.quiz_id}",
            'attemptsUsed': rollup.attempts_used,
            'bestPercent': best,
            'lastSubmittedAt': rollup.last_submitted_at,
        })

    completed = CompletedModule.objects.filter(user=student)
    if course_id:
        completed = completed.filter(course_id=course_id)

    return {
        'student': {'userId': student.pk, 'studentId': student.student_id, 'name': student.display_name},
        'quizzes': per_quiz,
        'summary': {
            'quizzesTaken': len(per_quiz),
            'quizAverage': rollup_average(visible) or 0,
            'modulesCompleted': completed.count(),
        },
    }
