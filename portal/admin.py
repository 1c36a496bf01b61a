from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import File, Meeting, Project, Proposal, Request, Task, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "full_name", "email", "id_number", "role", "project", "mentor")
    list_filter = ("role", "is_staff", "is_active")
    search_fields = ("username", "full_name", "email", "id_number")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Portal", {"fields": ("role", "full_name", "id_number", "phone_number", "avatar", "project", "mentor")}),
    )
    list_per_page = 25


@admin.register(Proposal)
class ProposalAdmin(admin.ModelAdmin):
    list_display = ("project_name", "author", "co_student", "suggested_mentor", "status", "submitted_at", "reviewed_at")
    search_fields = ("project_name", "author_full_name", "co_student_full_name", "author__username")
    list_filter = ("status",)
    ordering = ("-created_at",)
    readonly_fields = ("author_full_name", "author_id_number", "co_student_full_name", "co_student_id_number",
                       "invalidated_by", "invalidated_at")


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("name", "mentor", "status", "approved_at", "hod_reviewer")
    search_fields = ("name", "mentor_name", "mentor__username")
    list_filter = ("status",)
    ordering = ("-approved_at",)
    readonly_fields = ("student_names", "mentor_name", "approved_at", "hod_reviewer")


@admin.register(Meeting)
class MeetingAdmin(admin.ModelAdmin):
    list_display = ("project", "proposer", "mentor", "proposed_date", "status", "get_awaiting")
    search_fields = ("project__name", "mentor__username", "proposer__username")
    list_filter = ("status", "mentor")
    ordering = ("-proposed_date",)

    def get_awaiting(self, obj):
        return obj.awaiting_approval_from or "-"
    get_awaiting.short_description = "Awaiting"


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ("title", "project", "status", "due_date", "completed_at", "completed_late")
    search_fields = ("title", "project__name")
    list_filter = ("status", "completed_late")
    ordering = ("due_date",)
    readonly_fields = ("completed_at", "due_date_at_completion", "completed_late")


@admin.register(File)
class FileAdmin(admin.ModelAdmin):
    list_display = ("original_name", "author", "proposal", "size", "created_at")
    search_fields = ("original_name", "author__username")


@admin.register(Request)
class RequestAdmin(admin.ModelAdmin):
    list_display = ("student", "mentor", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("student__username", "mentor__username")
    list_per_page = 10
