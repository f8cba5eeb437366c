from rest_framework import serializers

from .models import (
    Assignment, AssignmentSubmission, Course, Module, ModuleFile, RosterEntry, SchoolClass,
)


class SchoolClassSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = SchoolClass
        fields = [
            'id', 'name', 'display_name', 'grade_level', 'section', 'school_year', 'semester',
            'students', 'archived', 'teacher', 'created_at',
        ]
        read_only_fields = ['students', 'teacher', 'created_at']


class RosterEntrySerializer(serializers.ModelSerializer):
    student_id = serializers.CharField(source='student.student_id', read_only=True)
    user_id = serializers.IntegerField(source='student.id', read_only=True)
    name = serializers.CharField(source='student.display_name', read_only=True)

    class Meta:
        model = RosterEntry
        fields = ['id', 'user_id', 'student_id', 'name', 'email', 'active', 'enrolled_at']


class CourseSerializer(serializers.ModelSerializer):
    total_modules = serializers.IntegerField(source='modules.count', read_only=True)

    class Meta:
        model = Course
        fields = [
            'id', 'title', 'description', 'uploaded_by', 'teachers', 'assigned_classes',
            'archived', 'created_at', 'total_modules',
        ]
        read_only_fields = ['uploaded_by', 'created_at']


class ModuleFileSerializer(serializers.ModelSerializer):
    class Meta:
        model = ModuleFile
        fields = ['id', 'original_name', 'description', 'content_type', 'storage_path', 'download_url', 'public_url', 'uploaded_at']
        read_only_fields = fields


class ModuleSerializer(serializers.ModelSerializer):
    files = ModuleFileSerializer(many=True, read_only=True)

    class Meta:
        model = Module
        fields = ['id', 'course', 'title', 'module_type', 'module_number', 'archived', 'created_at', 'files']
        read_only_fields = ['module_number', 'created_at']


class AssignmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Assignment
        fields = ['id', 'course', 'module', 'title', 'instructions', 'due_at', 'points', 'metadata', 'archived', 'created_at']
        read_only_fields = ['created_at']

    def validate_points(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("Points must be positive.")
        return value


class AssignmentSubmissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = AssignmentSubmission
        fields = ['id', 'assignment', 'user', 'content', 'grade', 'score', 'percent', 'feedback', 'submitted_at', 'graded_at']
        read_only_fields = ['assignment', 'user', 'grade', 'score', 'percent', 'feedback', 'submitted_at', 'graded_at']


class AssignmentGradeSerializer(serializers.Serializer):
    grade = serializers.FloatField(min_value=0)
    feedback = serializers.CharField(required=False, allow_blank=True, default='')
