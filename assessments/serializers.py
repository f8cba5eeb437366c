from rest_framework import serializers

from .models import EssaySubmission, QuizAttemptsRoot


class AttemptSubmitSerializer(serializers.Serializer):
    score = serializers.FloatField()
    total = serializers.FloatField()
    timeTakenSeconds = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    answers = serializers.DictField(required=False, default=dict)
    reason = serializers.CharField(required=False, default='manual', max_length=30)
    moduleId = serializers.IntegerField(required=False, allow_null=True)
    courseId = serializers.IntegerField(required=False, allow_null=True)


class GradeEssaySerializer(serializers.Serializer):
    score = serializers.FloatField()
    maxScore = serializers.FloatField()
    feedback = serializers.CharField(required=False, allow_blank=True, default='')
    status = serializers.CharField(required=False, default='graded')


class EssaySubmissionSerializer(serializers.ModelSerializer):
    """Teacher-facing essay row."""
    studentName = serializers.CharField(source='user.display_name', read_only=True)
    studentEmail = serializers.CharField(source='user.email', read_only=True)
    questionTitle = serializers.SerializerMethodField()
    maxScore = serializers.SerializerMethodField()

    class Meta:
        model = EssaySubmission
        fields = [
            'id', 'quiz', 'course', 'module', 'attempt', 'studentName', 'studentEmail',
            'question_index', 'questionTitle', 'question_text', 'answer', 'status', 'score',
            'maxScore', 'feedback', 'created_at', 'graded_at',
        ]

    def get_questionTitle(self, obj):
        return f"Essay #{obj.question_index + 1}"

    def get_maxScore(self, obj):
        return obj.max_score if obj.max_score is not None else 10


class QuizRollupSerializer(serializers.ModelSerializer):
    quiz_title = serializers.CharField(source='quiz.title', read_only=True)

    class Meta:
        model = QuizAttemptsRoot
        fields = [
            'id', 'quiz', 'quiz_title', 'course', 'module', 'attempts_used', 'last_score', 'last_total',
            'last_score_percent', 'best_percent', 'best_graded_percent', 'last_submitted_at',
        ]
