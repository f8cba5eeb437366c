# quizzes/serializers.py
from rest_framework import serializers

from cores.exceptions import ValidationError
from cores.models import PlatformSetting
from cores.utils import to_datetime

from . import services
from .models import Question, Quiz
from .validators import normalize_attempts_allowed, normalize_passing_percent, normalize_settings


class QuestionSerializer(serializers.ModelSerializer):
    # Clients send/read 'question', 'correctAnswer', 'imageUrl'
    question = serializers.CharField(source='text')
    correctAnswer = serializers.CharField(source='correct_answer', allow_null=True, required=False)
    imageUrl = serializers.CharField(source='image_url', allow_null=True, required=False)

    class Meta:
        model = Question
        fields = ['id', 'index', 'question', 'choices', 'correctAnswer', 'imageUrl']


class QuizSerializer(serializers.ModelSerializer):
    """
    Quiz authoring payload.

    `questions` is write-only input in the client shape; on update it
    replaces the whole question list. Settings, attempts and pass mark are
    normalised before they reach the model.
    """
    questions = serializers.ListField(child=serializers.DictField(), write_only=True, required=False)
    question_list = QuestionSerializer(source='questions', many=True, read_only=True)
    total_questions = serializers.IntegerField(read_only=True)
    settings = serializers.JSONField(required=False)
    attempts_allowed = serializers.JSONField(required=False, allow_null=True)
    passing_percent = serializers.JSONField(required=False, allow_null=True)
    due_at = serializers.JSONField(required=False, allow_null=True)
    publish_at = serializers.JSONField(required=False, allow_null=True)

    class Meta:
        model = Quiz
        fields = [
            'id', 'course', 'module', 'title', 'description', 'settings', 'attempts_allowed',
            'passing_percent', 'due_at', 'publish_at', 'assigned_classes', 'archived',
            'created_at', 'updated_at', 'total_questions', 'questions', 'question_list',
        ]
        read_only_fields = ['archived', 'created_at', 'updated_at']

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError("Quiz title is required.")
        return value.strip()

    def validate(self, attrs):
        if 'settings' in attrs:
            attrs['settings'] = normalize_settings(
                attrs['settings'], default_duration=PlatformSetting.load().default_quiz_duration,
            )
        if 'attempts_allowed' in attrs:
            attrs['attempts_allowed'] = normalize_attempts_allowed(attrs['attempts_allowed'])
        if 'passing_percent' in attrs:
            attrs['passing_percent'] = normalize_passing_percent(attrs['passing_percent'])
        for name in ('due_at', 'publish_at'):
            if name in attrs:
                raw = attrs[name]
                attrs[name] = to_datetime(raw)
                if raw not in (None, '') and attrs[name] is None:
                    raise ValidationError(f"Invalid {name}.")
        if 'questions' in attrs:
            attrs['questions'] = services.clean_questions(attrs['questions'])
            if not attrs['questions']:
                raise ValidationError("No valid quiz questions provided.")
        elif self.instance is None:
            raise ValidationError("Missing required fields or empty quiz array.")
        return attrs

    def create(self, validated_data):
        questions = validated_data.pop('questions')
        classes = validated_data.pop('assigned_classes', [])
        validated_data.setdefault('settings', normalize_settings({}))
        quiz = Quiz.objects.create(**validated_data)
        quiz.assigned_classes.set(classes)
        services.replace_questions(quiz, questions)
        return quiz

    def update(self, instance, validated_data):
        questions = validated_data.pop('questions', None)
        quiz = super().update(instance, validated_data)
        if questions is not None:
            services.replace_questions(quiz, questions)
        return quiz


class QuizListSerializer(serializers.ModelSerializer):
    total_questions = serializers.IntegerField(read_only=True)

    class Meta:
        model = Quiz
        fields = [
            'id', 'course', 'module', 'title', 'description', 'attempts_allowed', 'passing_percent',
            'due_at', 'publish_at', 'archived', 'total_questions', 'created_at',
        ]
