import logging

from django.db import transaction

from cores.queries import delete_in_chunks

from .models import Question, Quiz

logger = logging.getLogger(__name__)


def clean_questions(raw_questions):
    """Drop entries without question text; accept `correct` or `correctAnswer`."""
    cleaned = []
    for item in raw_questions or []:
        if not isinstance(item, dict) or not str(item.get('question') or '').strip():
            continue
        choices = item.get('choices')
        correct = item.get('correct', item.get('correctAnswer'))
        cleaned.append({
            'text': str(item['question']),
            'choices': choices if isinstance(choices, dict) else {},
            'correct_answer': None if correct is None else str(correct),
            'image_url': item.get('imageUrl'),
        })
    return cleaned


def replace_questions(quiz, questions):
    with transaction.atomic():
        quiz.questions.all().delete()
        Question.objects.bulk_create(
            Question(quiz=quiz, index=position, **data) for position, data in enumerate(questions)
        )


def delete_quiz_cascade(quiz):
    """
    Delete a quiz with its questions, essay submissions, rollups and attempts.

    Each collection goes in DELETE_BATCH_SIZE chunks, looping until nothing
    is left, so very large result sets never land in one transaction.
    """
    # Imported here: assessments.models imports this app's models
    from assessments.models import Attempt, EssaySubmission, QuizAttemptsRoot

    counts = {
        'questions': delete_in_chunks(Question.objects.filter(quiz=quiz)),
        'essays': delete_in_chunks(EssaySubmission.objects.filter(quiz=quiz)),
        'attempts': delete_in_chunks(Attempt.objects.filter(root__quiz=quiz)),
        'rollups': delete_in_chunks(QuizAttemptsRoot.objects.filter(quiz=quiz)),
    }
    quiz_id = quiz.pk
    Quiz.objects.filter(pk=quiz_id).delete()
    logger.info("Deleted quiz %s with %s", quiz_id, counts)
    return counts
