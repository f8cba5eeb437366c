from rest_framework import serializers
from django.contrib.auth import get_user_model
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from cores import crypto

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    first_name = serializers.SerializerMethodField()
    middle_name = serializers.SerializerMethodField()
    last_name = serializers.SerializerMethodField()
    name = serializers.CharField(source='display_name', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'username', 'student_id', 'name', 'first_name', 'middle_name', 'last_name',
            'role', 'grade_level', 'section', 'average_quiz_score', 'is_staff', 'avatar',
        ]
        read_only_fields = ['is_staff', 'average_quiz_score', 'role']

    # Names live encrypted; one bad token must not fail a whole listing.
    def get_first_name(self, obj):
        return obj.decrypted_names()['first_name']

    def get_middle_name(self, obj):
        return obj.decrypted_names()['middle_name']

    def get_last_name(self, obj):
        return obj.decrypted_names()['last_name']


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)
    first_name = serializers.CharField(write_only=True)
    middle_name = serializers.CharField(write_only=True, required=False, allow_blank=True)
    last_name = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'username', 'student_id', 'first_name', 'middle_name', 'last_name',
            'password', 'role', 'grade_level', 'section',
        ]
        extra_kwargs = {'username': {'required': False}}

    def create(self, validated_data):
        user = User(
            username=validated_data.get('username') or validated_data['email'],
            email=validated_data['email'],
            student_id=validated_data.get('student_id') or None,
            role=validated_data.get('role', User.Role.STUDENT),
            grade_level=validated_data.get('grade_level', ''),
            section=validated_data.get('section', ''),
            first_name_enc=crypto.encrypt(validated_data['first_name'].strip()),
            middle_name_enc=crypto.encrypt(validated_data.get('middle_name', '').strip()),
            last_name_enc=crypto.encrypt(validated_data['last_name'].strip()),
        )
        user.set_password(validated_data['password'])
        user.save()
        return user

    def to_representation(self, instance):
        return UserSerializer(instance, context=self.context).data


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user).data
        return data


class StudentListSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source='display_name', read_only=True)
    quizzes_taken = serializers.SerializerMethodField()
    modules_completed = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'student_id', 'name', 'average_quiz_score', 'quizzes_taken', 'modules_completed']

    def get_quizzes_taken(self, obj):
        return obj.quiz_rollups.filter(attempts_used__gt=0).count()

    def get_modules_completed(self, obj):
        return obj.completed_modules.count()
