import logging
from unittest import mock

import pytest

from assessments import services as attempt_services
from assessments.models import QuizAttemptsRoot
from courses.models import Course, Module, ModuleFile
from courses.services import delete_course, delete_module
from quizzes.models import Quiz

pytestmark = pytest.mark.django_db


@pytest.fixture
def bucket():
    with mock.patch('cores.storage.default_storage') as storage:
        storage.exists.return_value = True
        storage.listdir.return_value = ([], [])
        yield storage


def add_file(module, name):
    return ModuleFile.objects.create(module=module, original_name=name, storage_path=f"modules/{module.pk}/{name}")


def test_failed_blob_delete_still_removes_module(bucket, course, module, caplog):
    add_file(module, 'notes.pdf')
    sibling = Module.objects.create(course=course, title='Later', module_number=2)
    bucket.delete.side_effect = OSError('bucket unreachable')

    with caplog.at_level(logging.WARNING, logger='cores.storage'):
        delete_module(module)

    assert not Module.objects.filter(pk=module.pk).exists()
    assert not ModuleFile.objects.filter(module_id=module.pk).exists()
    sibling.refresh_from_db()
    assert sibling.module_number == 1
    assert 'bucket unreachable' in caplog.text


def test_delete_course_cleans_stored_files(bucket, course, module, student, make_quiz):
    add_file(module, 'notes.pdf')
    second = Module.objects.create(course=course, title='Tissues', module_number=2)
    add_file(second, 'slides.pdf')
    quiz = make_quiz()
    attempt_services.submit_attempt(student, quiz.pk, 5, 10)

    delete_course(course)

    deleted = sorted(call.args[0] for call in bucket.delete.call_args_list)
    assert deleted == [f"modules/{module.pk}/notes.pdf", f"modules/{second.pk}/slides.pdf"]
    assert bucket.listdir.call_count == 2
    assert not Course.objects.filter(pk=course.pk).exists()
    assert not Quiz.objects.filter(pk=quiz.pk).exists()
    assert not QuizAttemptsRoot.objects.filter(quiz_id=quiz.pk).exists()


def test_course_endpoint_delete_goes_through_cleanup(bucket, client_for, teacher, course, module):
    add_file(module, 'notes.pdf')

    response = client_for(teacher).delete(f"/api/courses/{course.pk}/")

    assert response.status_code == 204
    bucket.delete.assert_called_once_with(f"modules/{module.pk}/notes.pdf")
    assert not Course.objects.filter(pk=course.pk).exists()
