"""
Roster and module-content operations that touch more than one row.
"""
import logging
from dataclasses import dataclass

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F, Max

from cores import storage
from cores.exceptions import NotFound, ValidationError
from quizzes.services import delete_quiz_cascade

from .models import Enrollment, Module, ModuleFile, RosterEntry, SchoolClass

logger = logging.getLogger(__name__)

User = get_user_model()


@dataclass(frozen=True)
class EnrollmentResult:
    class_id: int
    user_id: int
    already_enrolled: bool


def enroll_student(class_id, student_id):
    """
    Put a student (looked up by school-facing id) on a class roster.

    Roster entry, class counter and the student's enrollment row are written
    together, and re-enrolling an existing member writes nothing.
    """
    sid = str(student_id or '').strip()
    if not sid:
        raise ValidationError("studentId is required.")

    user = User.objects.filter(student_id=sid).first()
    if user is None:
        raise NotFound("Student not found.")

    with transaction.atomic():
        try:
            school_class = SchoolClass.objects.select_for_update().get(pk=class_id)
        except SchoolClass.DoesNotExist:
            raise NotFound("Class not found.")

        if RosterEntry.objects.filter(school_class=school_class, student=user).exists():
            return EnrollmentResult(school_class.pk, user.pk, already_enrolled=True)

        RosterEntry.objects.create(
            school_class=school_class,
            student=user,
            full_name=user.display_name,
            email=user.email,
            active=user.is_active,
        )
        SchoolClass.objects.filter(pk=school_class.pk).update(students=F('students') + 1)
        Enrollment.objects.update_or_create(
            user=user,
            school_class=school_class,
            defaults={
                'name': school_class.name,
                'grade_level': school_class.grade_level,
                'section': school_class.section,
                'school_year': school_class.school_year,
                'semester': school_class.semester,
            },
        )

    logger.info("Enrolled student %s in class %s", sid, class_id)
    return EnrollmentResult(school_class.pk, user.pk, already_enrolled=False)


def unenroll_student(class_id, user_id):
    with transaction.atomic():
        deleted, _ = RosterEntry.objects.filter(school_class_id=class_id, student_id=user_id).delete()
        if not deleted:
            raise NotFound("Student is not on this roster.")
        SchoolClass.objects.filter(pk=class_id, students__gt=0).update(students=F('students') - 1)
        Enrollment.objects.filter(school_class_id=class_id, user_id=user_id).delete()


def next_module_number(course):
    current = Module.objects.filter(course=course).aggregate(top=Max('module_number'))['top']
    return (current or 0) + 1


def renumber_modules(course_id):
    for number, module in enumerate(Module.objects.filter(course_id=course_id).order_by('module_number', 'pk'), start=1):
        if module.module_number != number:
            Module.objects.filter(pk=module.pk).update(module_number=number)


def attach_file(module, uploaded_file, description=''):
    """Store an uploaded file under modules/<module id>/ and record it."""
    path = storage.build_storage_path('modules', module.pk, uploaded_file.name)
    stored = storage.put(
        path,
        uploaded_file.read(),
        content_type=getattr(uploaded_file, 'content_type', None),
        metadata={'moduleId': str(module.pk), 'courseId': str(module.course_id)},
    )
    return ModuleFile.objects.create(
        module=module,
        original_name=uploaded_file.name,
        description=description,
        content_type=stored.metadata.get('contentType', ''),
        storage_path=stored.storage_path,
        download_url=stored.download_url,
        public_url=stored.public_url,
    )


def delete_module_file(module_file):
    result = storage.delete(module_file.storage_path)
    storage.log_failure(result, f"module file {module_file.pk}")
    module_file.delete()
    return result


def delete_module(module):
    """
    Delete a module and renumber its siblings.

    Stored files are removed first; a failed removal is logged and the
    record delete goes ahead anyway.
    """
    course_id = module.course_id
    for path in module.files.values_list('storage_path', flat=True):
        storage.log_failure(storage.delete(path), f"module {module.pk}")
    storage.log_failure(storage.delete_by_prefix(f"modules/{module.pk}"), f"module {module.pk}")

    with transaction.atomic():
        module.delete()
        renumber_modules(course_id)


def delete_course(course):
    """
    Delete a course with its quizzes, modules and stored module files.

    Quizzes go through the chunked cascade, modules through delete_module so
    every stored file gets a best-effort removal before the rows disappear.
    """
    for quiz in list(course.quizzes.all()):
        delete_quiz_cascade(quiz)
    for module in list(course.modules.all()):
        delete_module(module)
    course_id = course.pk
    course.delete()
    logger.info("Deleted course %s", course_id)
