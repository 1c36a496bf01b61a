from collections import namedtuple

from django.db.models import Q

from .models import Proposal, Role, User

Eligibility = namedtuple("Eligibility", ["eligible", "reason", "student"])

NOT_FOUND = "Student not found."
IN_PROJECT = "Student is already in a project."
PENDING_ELSEWHERE = "Student is already part of another pending proposal."


def pending_proposals_for(student_id):
    return Proposal.objects.filter(
        Q(author_id=student_id) | Q(co_student_id=student_id),
        status=Proposal.Status.PENDING,
    )


def check_student_eligibility(student_id, exclude_proposal=None):
    """
    Whether a student may author or co-author a proposal right now.

    A missing (or non-student) record is reported as ineligible, never raised.
    ``exclude_proposal`` keeps the proposal being submitted out of the
    pending-elsewhere check.
    """
    student = User.objects.filter(pk=student_id, role=Role.STUDENT).first()
    if student is None:
        return Eligibility(False, NOT_FOUND, None)
    if student.is_in_project:
        return Eligibility(False, IN_PROJECT, student)

    others = pending_proposals_for(student.pk)
    if exclude_proposal is not None:
        others = others.exclude(pk=getattr(exclude_proposal, "pk", exclude_proposal))
    if others.exists():
        return Eligibility(False, PENDING_ELSEWHERE, student)

    return Eligibility(True, "", student)


def eligible_co_students(exclude=None):
    """Students free to be picked as co-student: not in a project, not on a pending proposal."""
    pending = Proposal.objects.filter(status=Proposal.Status.PENDING)
    busy = set(pending.values_list("author_id", flat=True))
    busy.update(pk for pk in pending.values_list("co_student_id", flat=True) if pk)

    qs = User.objects.filter(role=Role.STUDENT, project__isnull=True).exclude(pk__in=busy)
    if exclude is not None:
        qs = qs.exclude(pk=getattr(exclude, "pk", exclude))
    return qs.order_by("full_name", "username")
