from rest_framework import serializers

from .models import PlatformSetting, AuditLog


class PlatformSettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlatformSetting
        fields = ['default_pass_mark', 'default_quiz_duration', 'default_essay_max_score', 'analytics_pass_threshold']

    def validate_default_pass_mark(self, value):
        if not 0 <= value <= 100:
            raise serializers.ValidationError("Pass mark must be between 0 and 100.")
        return value

    def validate_analytics_pass_threshold(self, value):
        if not 0 <= value <= 100:
            raise serializers.ValidationError("Threshold must be between 0 and 100.")
        return value

    def validate_default_essay_max_score(self, value):
        if value <= 0:
            raise serializers.ValidationError("Essay max score must be positive.")
        return value

    def validate_default_quiz_duration(self, value):
        if value < 1:
            raise serializers.ValidationError("Quiz duration must be at least one minute.")
        return value


class AuditLogSerializer(serializers.ModelSerializer):
    actor_email = serializers.CharField(source='actor.email', read_only=True, default=None)
    actor_name = serializers.CharField(source='actor.display_name', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'actor', 'actor_email', 'actor_name', 'action', 'target_model', 'target_object_id', 'timestamp', 'details']
