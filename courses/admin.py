from django.contrib import admin

from .models import Assignment, AssignmentSubmission, Course, Enrollment, Module, ModuleFile, RosterEntry, SchoolClass

admin.site.register(SchoolClass)
admin.site.register(RosterEntry)
admin.site.register(Enrollment)
admin.site.register(Course)
admin.site.register(Module)
admin.site.register(ModuleFile)
admin.site.register(Assignment)
admin.site.register(AssignmentSubmission)
