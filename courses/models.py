# courses/models.py
from django.db import models
from django.conf import settings


class SchoolClass(models.Model):
    teacher = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='classes_taught')
    name = models.CharField(max_length=150, blank=True)
    grade_level = models.CharField(max_length=20, blank=True)
    section = models.CharField(max_length=50, blank=True)
    school_year = models.CharField(max_length=20, blank=True)
    semester = models.CharField(max_length=20, blank=True)

    # Denormalised roster count, kept in step by courses.services.enroll_student
    students = models.PositiveIntegerField(default=0)
    archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = 'classes'

    @property
    def display_name(self):
        if self.name:
            return self.name
        label = "-".join(p for p in (self.grade_level, self.section) if p)
        return label or "Class"

    def __str__(self):
        return self.display_name


class RosterEntry(models.Model):
    school_class = models.ForeignKey(SchoolClass, related_name='roster', on_delete=models.CASCADE)
    student = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='roster_entries', on_delete=models.CASCADE)
    full_name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True)
    active = models.BooleanField(default=True)
    enrolled_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('school_class', 'student')


class Enrollment(models.Model):
    """The student's own copy of a class membership."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='enrollments', on_delete=models.CASCADE)
    school_class = models.ForeignKey(SchoolClass, related_name='enrollments', on_delete=models.CASCADE)
    name = models.CharField(max_length=150, blank=True)
    grade_level = models.CharField(max_length=20, blank=True)
    section = models.CharField(max_length=50, blank=True)
    school_year = models.CharField(max_length=20, blank=True)
    semester = models.CharField(max_length=20, blank=True)
    enrolled_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('user', 'school_class')


class Course(models.Model):
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='courses_owned'
    )
    teachers = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name='courses_cotaught')
    assigned_classes = models.ManyToManyField(SchoolClass, blank=True, related_name='courses')
    archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def is_taught_by(self, user):
        if user.is_staff or getattr(user, 'role', '') == 'admin':
            return True
        return self.uploaded_by_id == user.pk or self.teachers.filter(pk=user.pk).exists()

    def __str__(self):
        return self.title


class Module(models.Model):
    class ModuleType(models.TextChoices):
        FILE = "file", "File Attachments"
        TEXT = "text", "Text / Video"

    course = models.ForeignKey(Course, related_name='modules', on_delete=models.CASCADE)
    title = models.CharField(max_length=255)
    module_type = models.CharField(max_length=10, choices=ModuleType.choices, default=ModuleType.FILE)
    module_number = models.PositiveIntegerField(default=1)
    archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['module_number']

    def __str__(self):
        return f"{self.course} / {self.module_number}. {self.title}"


class ModuleFile(models.Model):
    module = models.ForeignKey(Module, related_name='files', on_delete=models.CASCADE)
    original_name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    content_type = models.CharField(max_length=100, blank=True)
    storage_path = models.CharField(max_length=500)
    download_url = models.CharField(max_length=1000, blank=True)
    public_url = models.CharField(max_length=1000, blank=True)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.original_name


class Assignment(models.Model):
    course = models.ForeignKey(Course, related_name='assignments', on_delete=models.CASCADE)
    module = models.ForeignKey(Module, related_name='assignments', on_delete=models.SET_NULL, null=True, blank=True)
    title = models.CharField(max_length=255)
    instructions = models.TextField(blank=True)
    due_at = models.DateTimeField(null=True, blank=True)
    points = models.FloatField(null=True, blank=True)
    # Legacy documents kept their max under maxPoints / totalPoints / max / maxScore
    metadata = models.JSONField(default=dict, blank=True)
    archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.title


class AssignmentSubmission(models.Model):
    assignment = models.ForeignKey(Assignment, related_name='submissions', on_delete=models.CASCADE)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='assignment_submissions', on_delete=models.CASCADE)
    content = models.TextField(blank=True)

    # Any one of these may be set depending on which client wrote the row
    grade = models.FloatField(null=True, blank=True)
    score = models.FloatField(null=True, blank=True)
    percent = models.FloatField(null=True, blank=True)
    feedback = models.TextField(blank=True)

    submitted_at = models.DateTimeField(null=True, blank=True)
    graded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        unique_together = ('assignment', 'user')
