from django.urls import path

from .views import hod, meeting, mentor, profile, project, proposal, task

app_name = "portal"

urlpatterns = [
    # Auth / profile
    path("auth/csrf/", profile.csrf, name="csrf"),
    path("auth/login/", profile.user_login, name="login"),
    path("auth/logout/", profile.user_logout, name="logout"),
    path("auth/me/", profile.me, name="me"),
    path("auth/profile/", profile.edit_profile, name="edit-profile"),
    path("auth/profile/avatar/reset/", profile.reset_avatar, name="reset-avatar"),
    path("users/<int:user_id>/", profile.user_detail, name="user-detail"),

    # Proposals
    path("proposals/upload/", proposal.upload_file, name="proposal-upload"),
    path("proposals/file/<int:file_id>/", proposal.download_file, name="proposal-file"),
    path("proposals/draft/", proposal.save_draft, name="proposal-draft"),
    path("proposals/eligible-co-students/", proposal.eligible_co_students_list, name="eligible-co-students"),
    path("proposals/eligibility/<int:student_id>/", proposal.check_eligibility, name="check-eligibility"),
    path("proposals/my/", proposal.my_proposals, name="my-proposals"),
    path("proposals/queue/", proposal.queue, name="proposal-queue"),
    path("proposals/<int:proposal_id>/", proposal.detail, name="proposal-detail"),
    path("proposals/<int:proposal_id>/submit/", proposal.submit, name="proposal-submit"),
    path("proposals/<int:proposal_id>/approve/", proposal.approve, name="proposal-approve"),
    path("proposals/<int:proposal_id>/reject/", proposal.reject, name="proposal-reject"),

    # Projects
    path("projects/", project.project_list, name="project-list"),
    path("projects/<int:project_id>/", project.detail, name="project-detail"),
    path("projects/<int:project_id>/status/", project.update_status, name="project-status"),

    # Meetings
    path("meetings/", meeting.all_meetings, name="meeting-list"),
    path("meetings/propose/", meeting.propose, name="meeting-propose"),
    path("meetings/for-mentor/me/", meeting.my_mentor_meetings, name="mentor-meetings"),
    path("meetings/project/<int:project_id>/", meeting.project_meetings, name="project-meetings"),
    path("meetings/<int:meeting_id>/", meeting.detail, name="meeting-detail"),
    path("meetings/<int:meeting_id>/approve/", meeting.approve, name="meeting-approve"),
    path("meetings/<int:meeting_id>/decline/", meeting.decline, name="meeting-decline"),
    path("meetings/<int:meeting_id>/reschedule/", meeting.reschedule, name="meeting-reschedule"),

    # Tasks
    path("tasks/", task.create, name="task-create"),
    path("tasks/project/<int:project_id>/", task.project_tasks, name="project-tasks"),
    path("tasks/meeting/<int:meeting_id>/", task.meeting_tasks, name="meeting-tasks"),
    path("tasks/<int:task_id>/", task.update_or_delete, name="task-detail"),
    path("tasks/<int:task_id>/complete/", task.complete, name="task-complete"),
    path("tasks/<int:task_id>/reopen/", task.reopen, name="task-reopen"),

    # Mentors and mentor requests
    path("mentors/", mentor.mentor_directory, name="mentor-directory"),
    path("mentors/my-students/", mentor.my_students, name="my-students"),
    path("mentor-requests/", mentor.requests, name="mentor-requests"),
    path("mentor-requests/<int:request_id>/approve/", hod.approve_request, name="mentor-request-approve"),
    path("mentor-requests/<int:request_id>/reject/", hod.reject_request, name="mentor-request-reject"),

    # HOD
    path("hod/dashboard/", hod.dashboard, name="hod-dashboard"),
    path("hod/export/excel/", hod.export_excel, name="hod-export-excel"),
    path("hod/export/pdf/", hod.export_pdf, name="hod-export-pdf"),
    path("hod/users/<int:user_id>/role/", hod.change_role, name="change-role"),
]
