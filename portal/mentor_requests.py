"""
Students asking the department for a specific mentor.

A student holds at most one pending or approved request at a time; once the
HOD rejects it the student may ask again.
"""
import logging

from django.db import transaction

from . import notifications
from .exceptions import Conflict, NotAuthorized, NotFound, ValidationFailed
from .models import Request, Role, User
from .serializers import request_to_dict

logger = logging.getLogger(__name__)

NEW_REQUEST_EVENT = "request:new"
STATUS_UPDATE_EVENT = "status:update"


def _with_relations(qs):
    return qs.select_related("student", "mentor")


def request_mentor(student, mentor_id):
    if not student.is_student:
        raise NotAuthorized("Only students can request a mentor.")
    if not mentor_id:
        raise ValidationFailed("mentor_id is required")

    mentor = User.objects.filter(pk=mentor_id, role=Role.MENTOR).first()
    if mentor is None:
        raise NotFound("Mentor not found")

    with transaction.atomic():
        # lock the student row so two concurrent requests serialize here
        User.objects.select_for_update().filter(pk=student.pk).first()
        open_request = Request.objects.filter(student=student).exclude(status=Request.Status.REJECTED).first()
        if open_request is not None:
            raise Conflict("You already have an open mentor request.")
        req = Request.objects.create(student=student, mentor=mentor)

    logger.info("Student %s requested mentor %s (request %s)", student.pk, mentor.pk, req.pk)
    notifications.notify_hods(NEW_REQUEST_EVENT, request_to_dict(req))
    return req


def _decide(hod, request_id, status):
    with transaction.atomic():
        req = _with_relations(Request.objects.select_for_update()).filter(pk=request_id).first()
        if req is None:
            raise NotFound("Request not found")
        if req.status != Request.Status.PENDING:
            raise Conflict("Request has already been decided.")

        req.status = status
        req.save(update_fields=["status"])
        if status == Request.Status.APPROVED:
            User.objects.filter(pk=req.student_id).update(mentor=req.mentor)

    logger.info("Mentor request %s %s by %s", req.pk, status, hod.pk)
    notifications.notify_users([req.student_id, req.mentor_id], STATUS_UPDATE_EVENT, request_to_dict(req))
    return req


def approve_request(hod, request_id):
    return _decide(hod, request_id, Request.Status.APPROVED)


def reject_request(hod, request_id):
    return _decide(hod, request_id, Request.Status.REJECTED)


def requests_for(user):
    """HODs see every request, mentors the ones addressed to them, students their own."""
    qs = Request.objects.all()
    if user.is_mentor:
        qs = qs.filter(mentor=user)
    elif user.is_student:
        qs = qs.filter(student=user)
    return _with_relations(qs)
