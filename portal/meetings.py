"""
Meeting lifecycle.

``held`` and ``expired`` are never set by a user: they are what ``accepted``
and ``pending`` become once the proposed date has passed. There is no
scheduler, so every status-sensitive read or write materializes the rows it
touches first (``materialize_meeting`` / ``materialize_meetings``).
"""
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from . import notifications
from .exceptions import Conflict, NotAuthorized, NotFound, ValidationFailed
from .models import Meeting, Project, Role
from .serializers import meeting_to_dict
from .utils import clashes, within_working_hours

logger = logging.getLogger(__name__)

NEW_MEETING_EVENT = "newMeeting"
MEETING_UPDATED_EVENT = "meetingUpdated"

CLOSED_FOR_RESCHEDULE = (Meeting.Status.REJECTED, Meeting.Status.HELD, Meeting.Status.EXPIRED)


# ---------- Temporal status ----------

def derive_status(meeting, now=None):
    """Status the meeting should have at ``now``. Pure; touches nothing."""
    now = now or timezone.now()
    if meeting.proposed_date < now:
        if meeting.status == Meeting.Status.ACCEPTED:
            return Meeting.Status.HELD
        if meeting.status == Meeting.Status.PENDING:
            return Meeting.Status.EXPIRED
    return meeting.status


def materialize_meeting(meeting, now=None):
    status = derive_status(meeting, now)
    if status != meeting.status:
        meeting.status = status
        meeting.save(update_fields=["status", "updated_at"])
        logger.debug("Meeting %s materialized to %s", meeting.pk, status)
    return meeting


def materialize_meetings(queryset=None, now=None):
    """Bulk, idempotent version of ``materialize_meeting``. Returns the number of rows changed."""
    qs = Meeting.objects.all() if queryset is None else queryset
    now = now or timezone.now()
    past = qs.filter(proposed_date__lt=now).order_by()
    held = past.filter(status=Meeting.Status.ACCEPTED).update(status=Meeting.Status.HELD, updated_at=now)
    expired = past.filter(status=Meeting.Status.PENDING).update(status=Meeting.Status.EXPIRED, updated_at=now)
    return held + expired


def materialize_for_user(user):
    """Materialize every meeting the user can see."""
    if user.is_hod:
        return materialize_meetings()
    if user.is_mentor:
        return materialize_meetings(Meeting.objects.filter(mentor=user))
    return materialize_meetings(Meeting.objects.filter(attendees=user))


# ---------- Helpers ----------

def _get_meeting(meeting_id):
    meeting = Meeting.objects.select_related("project", "mentor", "proposer").filter(pk=meeting_id).first()
    if meeting is None:
        raise NotFound("Meeting not found")
    return meeting


def _hours_message():
    return (
        f"Meetings can only be scheduled between {settings.PORTAL_WORKDAY_START_HOUR}:00 "
        f"and {settings.PORTAL_WORKDAY_END_HOUR}:00"
    )


def _notify_participants(meeting, event):
    recipients = [meeting.mentor_id] + list(meeting.attendees.values_list("pk", flat=True))
    notifications.notify_users(recipients, event, meeting_to_dict(meeting))


def _with_relations(qs):
    return qs.select_related("project", "mentor", "proposer").prefetch_related("attendees")


# ---------- Operations ----------

def propose(actor, project_id, proposed_date):
    project = Project.objects.select_related("mentor").filter(pk=project_id).first()
    if project is None:
        raise NotFound("Project not found")
    if not project.mentor_id:
        raise ValidationFailed("Project does not have a mentor")
    if not project.is_participant(actor):
        raise NotAuthorized("You are not a participant of this project.")
    if not within_working_hours(proposed_date):
        raise ValidationFailed(_hours_message())

    # Every meeting on the mentor's calendar counts here, whatever its status.
    # Rescheduling only checks accepted meetings.
    taken = Meeting.objects.filter(mentor_id=project.mentor_id).values_list("proposed_date", flat=True)
    if clashes(proposed_date, taken):
        raise Conflict("Mentor is unavailable at this time.")

    with transaction.atomic():
        meeting = Meeting.objects.create(
            project=project,
            proposer=actor,
            mentor=project.mentor,
            proposed_date=proposed_date,
        )
        meeting.attendees.set(list(project.students.all()) + [project.mentor])

    logger.info("Meeting %s proposed by user %s for project %s", meeting.pk, actor.pk, project.pk)
    _notify_participants(meeting, NEW_MEETING_EVENT)
    return meeting


def respond(actor, meeting_id, accept):
    """Approve (``accept=True``) or decline a pending meeting as the counterparty."""
    meeting = _get_meeting(meeting_id)
    materialize_meeting(meeting)

    verb = "approve" if accept else "decline"
    if meeting.counterparty_role == Role.MENTOR:
        if actor.pk != meeting.mentor_id:
            raise NotAuthorized(f"Only the project mentor can {verb} this meeting.")
    else:
        if actor.pk == meeting.mentor_id:
            raise NotAuthorized(f"You cannot {verb} a meeting you proposed.")
        if not (actor.is_student and meeting.is_attendee(actor)):
            raise NotAuthorized("You are not an attendee of this meeting.")

    if meeting.status != Meeting.Status.PENDING:
        raise Conflict("Meeting is no longer pending.")

    meeting.status = Meeting.Status.ACCEPTED if accept else Meeting.Status.REJECTED
    meeting.last_reschedule_reason = ""
    meeting.save(update_fields=["status", "last_reschedule_reason", "updated_at"])

    logger.info("Meeting %s %s by user %s", meeting.pk, meeting.status, actor.pk)
    _notify_participants(meeting, MEETING_UPDATED_EVENT)
    return meeting


def approve(actor, meeting_id):
    return respond(actor, meeting_id, accept=True)


def decline(actor, meeting_id):
    return respond(actor, meeting_id, accept=False)


def reschedule(actor, meeting_id, proposed_date, reason=""):
    if proposed_date is None:
        raise ValidationFailed("A new date must be proposed.")

    meeting = _get_meeting(meeting_id)
    materialize_meeting(meeting)

    if meeting.status in CLOSED_FOR_RESCHEDULE:
        raise Conflict("Cannot reschedule a rejected meeting or one whose time has passed.")

    if actor.pk != meeting.mentor_id and not meeting.is_attendee(actor):
        raise NotAuthorized("You are not authorized to reschedule this meeting.")

    if proposed_date <= timezone.now():
        raise ValidationFailed("Meeting must be in the future.")
    if not within_working_hours(proposed_date):
        raise ValidationFailed(_hours_message())

    mentor_meetings = Meeting.objects.filter(mentor_id=meeting.mentor_id)
    materialize_meetings(mentor_meetings)
    accepted = (
        mentor_meetings.filter(status=Meeting.Status.ACCEPTED)
        .exclude(pk=meeting.pk)
        .values_list("proposed_date", flat=True)
    )
    if clashes(proposed_date, accepted):
        raise Conflict("Mentor is unavailable at this time due to a conflict.")

    meeting.proposed_date = proposed_date
    meeting.status = Meeting.Status.PENDING
    meeting.proposer = actor
    meeting.last_reschedule_reason = (reason or "").strip()
    meeting.save()

    logger.info("Meeting %s rescheduled by user %s", meeting.pk, actor.pk)
    _notify_participants(meeting, MEETING_UPDATED_EVENT)
    return meeting


# ---------- Queries ----------

def get_meeting_for(user, meeting_id):
    meeting = _get_meeting(meeting_id)
    if not (user.is_hod or user.pk == meeting.mentor_id or meeting.is_attendee(user)):
        raise NotAuthorized("You are not a participant of this meeting.")
    return materialize_meeting(meeting)


def meetings_for_project(user, project_id):
    project = Project.objects.filter(pk=project_id).first()
    if project is None:
        raise NotFound("Project not found")
    if not (user.is_hod or project.is_participant(user)):
        raise NotAuthorized("You are not a participant of this project.")
    qs = Meeting.objects.filter(project=project)
    materialize_meetings(qs)
    return _with_relations(qs)


def meetings_for_mentor(mentor):
    qs = Meeting.objects.filter(mentor=mentor)
    materialize_meetings(qs)
    return _with_relations(qs)


def all_meetings():
    materialize_meetings()
    return _with_relations(Meeting.objects.all())
