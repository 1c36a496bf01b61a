"""
Mentor-assigned follow-up tasks.

Completion bookkeeping (completed_at, due_date_at_completion, completed_late)
lives in ``Task.save()``; this module only decides who may do what.
Create/update/delete events are emitted from ``portal.signals``.
"""
import logging

from django.utils import timezone

from .exceptions import Conflict, NotAuthorized, NotFound, ValidationFailed
from .meetings import materialize_meeting
from .models import Meeting, Project, Task

logger = logging.getLogger(__name__)


def _get_task(task_id):
    task = Task.objects.select_related("project", "meeting").filter(pk=task_id).first()
    if task is None:
        raise NotFound("Task not found")
    return task


def _require_project_mentor(user, project, action):
    if project.mentor_id != user.pk:
        raise NotAuthorized(f"Not authorized to {action} this task")


def _require_future(due_date):
    if due_date <= timezone.now():
        raise ValidationFailed("Due date must be in the future.")


def _ordered(qs):
    return qs.select_related("meeting", "created_by", "last_updated_by").order_by("due_date", "-created_at")


def create_task(mentor, meeting_id, title, due_date, description=""):
    title = (title or "").strip()
    if not meeting_id or not title:
        raise ValidationFailed("meeting_id and title are required")

    meeting = Meeting.objects.select_related("project").filter(pk=meeting_id).first()
    if meeting is None:
        raise NotFound("Meeting not found")

    # Either the meeting's mentor or the project's current mentor may add tasks.
    if mentor.pk not in (meeting.mentor_id, meeting.project.mentor_id):
        raise NotAuthorized("Not authorized to create tasks for this meeting")

    materialize_meeting(meeting)
    if meeting.status != Meeting.Status.HELD:
        raise Conflict("Tasks can be created only after a held meeting")

    if due_date is None:
        raise ValidationFailed("A due date is required.")
    _require_future(due_date)

    task = Task.objects.create(
        meeting=meeting,
        project=meeting.project,
        created_by=mentor,
        last_updated_by=mentor,
        title=title,
        description=description or "",
        due_date=due_date,
    )
    logger.info("Task %s created on meeting %s by %s", task.pk, meeting.pk, mentor.pk)
    return task


def complete_task(user, task_id):
    task = _get_task(task_id)
    project = task.project
    if not project.is_participant(user):
        raise NotAuthorized("Not authorized to complete this task")

    if task.status == Task.Status.COMPLETED:
        return task

    task.status = Task.Status.COMPLETED
    task.last_updated_by = user
    task.save()
    logger.info("Task %s completed by %s (late=%s)", task.pk, user.pk, task.completed_late)
    return task


def reopen_task(mentor, task_id):
    task = _get_task(task_id)
    _require_project_mentor(mentor, task.project, "reopen")

    task.status = Task.Status.OPEN
    task.last_updated_by = mentor
    task.save()
    return task


def update_task(mentor, task_id, changes):
    """Edit title, description and/or due date of an open task. Keys absent from ``changes`` are kept."""
    task = _get_task(task_id)
    _require_project_mentor(mentor, task.project, "update")
    if task.status != Task.Status.OPEN:
        raise Conflict("Only open tasks can be edited.")

    if "title" in changes:
        title = (changes["title"] or "").strip()
        if not title:
            raise ValidationFailed("Title cannot be empty.")
        task.title = title
    if "description" in changes:
        task.description = changes["description"] or ""
    if "due_date" in changes:
        if changes["due_date"] is None:
            raise ValidationFailed("Due date cannot be cleared.")
        _require_future(changes["due_date"])
        task.due_date = changes["due_date"]

    task.last_updated_by = mentor
    task.save()
    return task


def delete_task(mentor, task_id):
    task = _get_task(task_id)
    _require_project_mentor(mentor, task.project, "delete")
    pk = task.pk
    task.delete()
    logger.info("Task %s deleted by %s", pk, mentor.pk)
    return pk


def tasks_for_project(user, project_id):
    project = Project.objects.filter(pk=project_id).first()
    if project is None:
        raise NotFound("Project not found")
    if not project.is_participant(user):
        raise NotAuthorized("Not authorized to view tasks for this project")
    return _ordered(Task.objects.filter(project=project))


def tasks_for_meeting(user, meeting_id):
    meeting = Meeting.objects.select_related("project").filter(pk=meeting_id).first()
    if meeting is None:
        raise NotFound("Meeting not found")
    if not meeting.project.is_participant(user):
        raise NotAuthorized("Not authorized to view tasks for this meeting")
    return _ordered(Task.objects.filter(meeting=meeting))
