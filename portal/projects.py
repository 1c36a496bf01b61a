import logging

from .exceptions import NotAuthorized, NotFound, ValidationFailed
from .models import Project

logger = logging.getLogger(__name__)


def _with_relations(qs):
    return qs.select_related("mentor", "proposal").prefetch_related("students")


def projects_for(user):
    """HODs see every project, mentors the ones they mentor, students their own."""
    qs = Project.objects.all()
    if user.is_mentor:
        qs = qs.filter(mentor=user)
    elif user.is_student:
        qs = qs.filter(students=user)
    elif not user.is_hod:
        raise NotAuthorized("You are not authorized to view projects.")
    return _with_relations(qs).order_by("-created_at")


def get_project_for(user, project_id):
    project = _with_relations(Project.objects.filter(pk=project_id)).first()
    if project is None:
        raise NotFound("Project not found")
    if not (user.is_hod or project.is_participant(user)):
        raise NotAuthorized("You are not a participant of this project.")
    return project


def update_status(mentor, project_id, status):
    if status not in Project.Status.values:
        raise ValidationFailed(f"Invalid project status: {status}")

    project = Project.objects.filter(pk=project_id).first()
    if project is None:
        raise NotFound("Project not found")
    if project.mentor_id != mentor.pk:
        raise NotAuthorized("You are not authorized to update this project's status.")

    if project.status != status:
        project.status = status
        # portal.signals announces the change when "status" is among update_fields
        project.save(update_fields=["status", "updated_at"])
        logger.info("Project %s moved to %s by %s", project.pk, status, mentor.pk)
    return get_project_for(mentor, project.pk)
