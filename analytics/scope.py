"""
Fan-out loading shared by every teacher analytics report.

Classes -> courses -> modules / quizzes / assignments -> rosters -> users,
each stage one pass over the previous stage's ids in IN_QUERY_BATCH_SIZE
chunks. Nothing here aggregates; reports reduce over the loaded scope.
"""
from collections import defaultdict
from dataclasses import dataclass, field

from django.contrib.auth import get_user_model
from django.db.models import Q

from assessments.models import CompletedModule
from cores.conf import lms_setting
from cores.queries import fetch_ordered
from cores.utils import chunked
from courses.models import Assignment, Course, Module, RosterEntry, SchoolClass
from quizzes.models import Quiz

User = get_user_model()

NO_CLASS = '—'


@dataclass
class TeacherScope:
    classes: list = field(default_factory=list)
    courses: list = field(default_factory=list)
    class_course_ids: dict = field(default_factory=dict)
    modules_by_course: dict = field(default_factory=dict)
    quizzes_by_course: dict = field(default_factory=dict)
    assignments_by_course: dict = field(default_factory=dict)
    roster_by_class: dict = field(default_factory=dict)
    students: list = field(default_factory=list)

    def class_ids_for(self, student):
        return [c.pk for c in self.classes if student.pk in self.roster_by_class.get(c.pk, ())]

    def class_name_for(self, class_ids):
        if not class_ids:
            return NO_CLASS
        first = next(c for c in self.classes if c.pk == class_ids[0])
        return first.display_name

    def course_ids_for(self, class_ids):
        seen = []
        for class_id in class_ids:
            for course_id in self.class_course_ids.get(class_id, ()):
                if course_id not in seen:
                    seen.append(course_id)
        return seen

    def modules_total(self, course_ids):
        return sum(len(self.modules_by_course.get(cid, ())) for cid in course_ids)

    def quizzes_for(self, course_ids):
        return [quiz for cid in course_ids for quiz in self.quizzes_by_course.get(cid, ())]

    def assignments_for(self, course_ids):
        return [asg for cid in course_ids for asg in self.assignments_by_course.get(cid, ())]


def _group_by_course(model, course_ids, label):
    grouped = defaultdict(list)
    for batch in chunked(course_ids):
        for row in fetch_ordered(model.objects.filter(course_id__in=batch), 'created_at', 'pk', label=label):
            grouped[row.course_id].append(row)
    return dict(grouped)


def load_teacher_scope(teacher_id, class_id=None, limit_students=None, with_quizzes=True, with_assignments=False):
    limit_students = max(1, limit_students or lms_setting('ANALYTICS_STUDENT_LIMIT'))
    scope = TeacherScope()

    # 1) classes, newest first
    classes = fetch_ordered(SchoolClass.objects.filter(teacher_id=teacher_id), '-created_at', label='classes')
    if class_id:
        classes = [c for c in classes if str(c.pk) == str(class_id)]
    scope.classes = classes

    # 2) courses and class -> courses
    scope.courses = list(
        Course.objects.filter(Q(uploaded_by_id=teacher_id) | Q(teachers__id=teacher_id))
        .distinct().prefetch_related('assigned_classes').order_by('pk')
    )
    course_ids = [c.pk for c in scope.courses]
    class_course_ids = defaultdict(list)
    for course in scope.courses:
        for assigned in course.assigned_classes.all():
            if class_id and str(assigned.pk) != str(class_id):
                continue
            class_course_ids[assigned.pk].append(course.pk)
    scope.class_course_ids = dict(class_course_ids)

    # 3) content keyed by course
    scope.modules_by_course = _group_by_course(Module, course_ids, 'modules')
    if with_quizzes:
        scope.quizzes_by_course = _group_by_course(Quiz, course_ids, 'quizzes')
    if with_assignments:
        scope.assignments_by_course = _group_by_course(Assignment, course_ids, 'assignments')

    # 4) rosters -> users, first-seen order, capped
    roster_ids = []
    for school_class in classes:
        member_ids = list(
            RosterEntry.objects.filter(school_class=school_class)
            .order_by('enrolled_at', 'pk').values_list('student_id', flat=True)
        )
        scope.roster_by_class[school_class.pk] = set(member_ids)
        for member_id in member_ids:
            if member_id not in roster_ids:
                roster_ids.append(member_id)

    users_by_id = {}
    for batch in chunked(roster_ids):
        for user in User.objects.filter(pk__in=batch):
            users_by_id[user.pk] = user
    scope.students = [users_by_id[uid] for uid in roster_ids if uid in users_by_id][:limit_students]
    return scope


def count_completed_modules(student, course_ids):
    total = 0
    for batch in chunked(course_ids):
        total += CompletedModule.objects.filter(user=student, course_id__in=batch).count()
    return total


def student_label(student):
    return student.student_id or str(student.pk)
