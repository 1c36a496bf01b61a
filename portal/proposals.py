"""
Proposal lifecycle: Draft -> Pending -> Approved | Rejected.

Approval runs as a read-then-write unit of work inside one transaction: every
affected row is loaded and locked first, the mutations are applied afterwards,
and notifications go out only once the transaction has committed.
"""
import logging
from collections import namedtuple

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from . import notifications
from .eligibility import check_student_eligibility
from .exceptions import Conflict, NotAuthorized, NotFound, TransactionFailed, ValidationFailed
from .models import File, Project, Proposal, Role, User

logger = logging.getLogger(__name__)

PROPOSAL_EVENT = "updateProposals"
CO_STUDENTS_EVENT = "coStudentsInvalidated"

ApprovalPlan = namedtuple("ApprovalPlan", ["hod", "proposal", "mentor", "students", "conflicting", "now"])


def _get_proposal(pk, **filters):
    try:
        return Proposal.objects.get(pk=pk, **filters)
    except Proposal.DoesNotExist:
        raise NotFound("Proposal not found")


def _notify_change(proposal):
    notifications.notify_hods(PROPOSAL_EVENT)
    notifications.notify_users(proposal.student_ids, PROPOSAL_EVENT)


def conflict_reason(approved):
    return f'A conflicting project proposal "{approved.project_name}" was approved.'


# ---------- Attachments ----------

def upload_attachment(author, uploaded):
    """Store an already validated PDF upload as a File owned by ``author``."""
    f = File.objects.create(
        original_name=uploaded.name,
        upload=uploaded,
        size=uploaded.size or 0,
        mime=getattr(uploaded, "content_type", None) or "application/pdf",
        author=author,
    )
    logger.info("File %s uploaded by user %s", f.pk, author.pk)
    return f


def get_file_for(user, file_id):
    """Return the File if ``user`` may download it."""
    f = File.objects.select_related("proposal").filter(pk=file_id).first()
    if f is None:
        raise NotFound("File not found.")
    if f.author_id == user.pk:
        return f

    proposal = f.proposal or Proposal.objects.filter(attachment=f).first()
    if proposal is None:
        raise NotFound("Associated proposal not found.")

    allowed = (
        user.pk in proposal.student_ids
        or user.role in (Role.MENTOR, Role.HOD)
    )
    if not allowed:
        raise NotAuthorized("You are not authorized to view this file.")
    return f


# ---------- Drafts ----------

def save_draft(student, changes, proposal_id=None):
    """
    Create or update a draft from the fields present in ``changes``.

    Recognised control keys: ``attachment_id``, ``remove_attachment``,
    ``remove_co_student``, ``remove_suggested_mentor``. ``co_student`` and
    ``suggested_mentor`` are User instances or None (None clears them).
    """
    if not student.is_student:
        raise NotAuthorized("Only students can draft proposals.")
    if student.is_in_project:
        raise Conflict("You are already in a project and cannot create a new proposal.")

    changes = dict(changes)
    attachment_id = changes.pop("attachment_id", None)
    remove_attachment = changes.pop("remove_attachment", False)
    if changes.pop("remove_co_student", False):
        changes["co_student"] = None
    if changes.pop("remove_suggested_mentor", False):
        changes["suggested_mentor"] = None

    co_student = changes.get("co_student")
    if co_student is not None:
        if co_student.pk == student.pk:
            raise ValidationFailed("You cannot list yourself as co-student.")
        if not co_student.is_student:
            raise ValidationFailed("Invalid co-student ID.")
    mentor = changes.get("suggested_mentor")
    if mentor is not None and not mentor.is_mentor:
        raise ValidationFailed("Invalid mentor ID.")

    attachment = None
    if attachment_id:
        attachment = File.objects.filter(pk=attachment_id, author=student).first()
        if attachment is None:
            raise ValidationFailed("Invalid attachment ID.")

    with transaction.atomic():
        if proposal_id:
            proposal = (
                Proposal.objects.select_for_update()
                .filter(pk=proposal_id, author=student, status__in=Proposal.EDITABLE_STATUSES)
                .first()
            )
            if proposal is None:
                raise NotFound("Draft not found or permission denied.")
        else:
            proposal = Proposal(author=student)

        for field, value in changes.items():
            setattr(proposal, field, value)
        if not (proposal.project_name or "").strip():
            raise ValidationFailed("Project name is required.", errors={"project_name": ["This field is required."]})

        proposal.snapshot_author(student)
        proposal.mobile_phone = student.phone_number
        proposal.status = Proposal.Status.DRAFT
        if attachment is not None:
            proposal.attachment = attachment
        elif remove_attachment:
            proposal.attachment = None
        proposal.save()

        if attachment is not None:
            File.objects.filter(pk=attachment.pk).update(proposal=proposal)

    logger.info("Draft %s saved by student %s", proposal.pk, student.pk)
    return proposal


# ---------- Submission ----------

def _pending_clash_message(proposal):
    others = Proposal.objects.filter(status=Proposal.Status.PENDING).exclude(pk=proposal.pk)
    if others.filter(author_id=proposal.author_id).exists():
        return "You already have a proposal pending review."
    return "Your co-student already has a proposal pending review."


def submit(student, proposal_id):
    author_check = check_student_eligibility(student.pk, exclude_proposal=proposal_id)
    if not author_check.eligible:
        raise Conflict(f"You are not eligible to submit a proposal: {author_check.reason}")

    proposal = _get_proposal(proposal_id, author=student)
    if not proposal.is_editable:
        raise Conflict(f"Cannot submit proposal with status: {proposal.status}")

    if proposal.co_student_id:
        co_check = check_student_eligibility(proposal.co_student_id, exclude_proposal=proposal)
        if not co_check.eligible:
            raise Conflict(f"Co-student is not eligible: {co_check.reason}")
        proposal.snapshot_co_student(co_check.student)
    else:
        proposal.co_student_full_name = ""
        proposal.co_student_id_number = ""

    proposal.status = Proposal.Status.PENDING
    proposal.submitted_at = timezone.now()
    proposal.reviewed_at = None
    proposal.reviewed_by = None
    proposal.decision = ""
    proposal.decision_reason = ""
    proposal.invalidated_by = None
    proposal.invalidated_at = None

    try:
        with transaction.atomic():
            proposal.save()
    except IntegrityError:
        # Lost a race with a concurrent submission for one of the students.
        logger.info("Duplicate pending proposal rejected for proposal %s", proposal.pk)
        raise Conflict(_pending_clash_message(proposal))

    logger.info("Proposal %s submitted by student %s", proposal.pk, student.pk)
    _notify_change(proposal)
    notifications.broadcast(CO_STUDENTS_EVENT)
    return proposal


# ---------- Review ----------

def _plan_approval(hod, proposal_id, mentor_id):
    proposal = Proposal.objects.select_for_update().filter(pk=proposal_id).first()
    if proposal is None:
        raise NotFound("Proposal not found")
    if proposal.status != Proposal.Status.PENDING:
        raise Conflict("Can only approve a pending proposal")

    final_mentor_id = mentor_id or proposal.suggested_mentor_id
    if not final_mentor_id:
        raise ValidationFailed("Mentor must be assigned before approval")
    mentor = User.objects.filter(pk=final_mentor_id, role=Role.MENTOR).first()
    if mentor is None:
        raise NotFound("Mentor not found")

    student_ids = proposal.student_ids
    students = list(User.objects.select_for_update().filter(pk__in=student_ids).order_by("pk"))
    if len(students) != len(student_ids):
        raise NotFound("Student not found")
    taken = [s.display_name for s in students if s.is_in_project]
    if taken:
        raise Conflict(f"Already assigned to a project: {', '.join(taken)}")

    conflicting = list(
        Proposal.objects.select_for_update()
        .filter(Q(author_id__in=student_ids) | Q(co_student_id__in=student_ids), status=Proposal.Status.PENDING)
        .exclude(pk=proposal.pk)
    )
    return ApprovalPlan(hod, proposal, mentor, students, conflicting, timezone.now())


def _create_project(plan):
    proposal = plan.proposal
    student_names = [proposal.author_full_name]
    if proposal.co_student_id:
        student_names.append(proposal.co_student_full_name)

    project = Project.objects.create(
        name=proposal.project_name,
        background=proposal.background,
        objectives=proposal.objectives,
        mentor=plan.mentor,
        proposal=proposal,
        student_names=student_names,
        mentor_name=plan.mentor.display_name,
        approved_at=plan.now,
        hod_reviewer=plan.hod,
    )
    project.students.set(plan.students)
    return project


def _reject_conflicting(plan):
    for other in plan.conflicting:
        other.status = Proposal.Status.REJECTED
        other.decision = Proposal.Status.REJECTED
        other.decision_reason = conflict_reason(plan.proposal)
        other.reviewed_at = plan.now
        other.invalidated_by = plan.proposal
        other.invalidated_at = plan.now
        other.save()


def _apply_approval(plan):
    project = _create_project(plan)

    proposal = plan.proposal
    proposal.status = Proposal.Status.APPROVED
    proposal.reviewed_by = plan.hod
    proposal.reviewed_at = plan.now
    proposal.decision = Proposal.Status.APPROVED
    proposal.decision_reason = ""
    proposal.save()

    User.objects.filter(pk__in=[s.pk for s in plan.students]).update(project=project, mentor=plan.mentor)
    _reject_conflicting(plan)
    return project


def approve(hod, proposal_id, mentor_id=None):
    """Approve a pending proposal, creating its Project. All or nothing."""
    try:
        with transaction.atomic():
            plan = _plan_approval(hod, proposal_id, mentor_id)
            project = _apply_approval(plan)
    except IntegrityError:
        logger.warning("Approval of proposal %s hit a constraint; rolled back", proposal_id, exc_info=True)
        raise Conflict("The proposal was approved concurrently; no changes were made.")
    except DatabaseError:
        logger.exception("Approval of proposal %s failed; rolled back", proposal_id)
        raise TransactionFailed()

    logger.info(
        "Proposal %s approved by %s: project %s, %d conflicting proposal(s) rejected",
        plan.proposal.pk, hod.pk, project.pk, len(plan.conflicting),
    )

    _notify_change(plan.proposal)
    for other in plan.conflicting:
        notifications.notify_users(other.student_ids, PROPOSAL_EVENT)
    notifications.broadcast(CO_STUDENTS_EVENT)
    notifications.email_users(
        plan.students,
        f"Proposal approved: {plan.proposal.project_name}",
        f"Your proposal \"{plan.proposal.project_name}\" was approved. Your mentor is {plan.mentor.display_name}.",
    )
    return project


def reject(hod, proposal_id, reason):
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailed("Rejection reason is required")

    with transaction.atomic():
        proposal = Proposal.objects.select_for_update().filter(pk=proposal_id).first()
        if proposal is None:
            raise NotFound("Proposal not found")
        if proposal.status != Proposal.Status.PENDING:
            raise Conflict("Can only reject a pending proposal")

        proposal.status = Proposal.Status.REJECTED
        proposal.reviewed_by = hod
        proposal.reviewed_at = timezone.now()
        proposal.decision = Proposal.Status.REJECTED
        proposal.decision_reason = reason
        proposal.save()

    logger.info("Proposal %s rejected by %s", proposal.pk, hod.pk)
    _notify_change(proposal)
    notifications.broadcast(CO_STUDENTS_EVENT)
    students = User.objects.filter(pk__in=proposal.student_ids)
    notifications.email_users(
        students,
        f"Proposal rejected: {proposal.project_name}",
        f"Your proposal \"{proposal.project_name}\" was rejected.\nReason: {reason}",
    )
    return proposal


# ---------- Queries ----------

def my_proposals(student):
    return (
        Proposal.objects.filter(
            Q(author=student)
            | Q(co_student=student, status__in=[Proposal.Status.PENDING, Proposal.Status.APPROVED])
        )
        .select_related("suggested_mentor", "attachment")
        .order_by("-created_at")
    )


def pending_queue():
    return (
        Proposal.objects.filter(status=Proposal.Status.PENDING)
        .select_related("author", "co_student", "suggested_mentor", "attachment")
        .order_by("submitted_at")
    )


def get_proposal_for(user, proposal_id):
    proposal = _get_proposal(proposal_id)
    if user.is_hod or proposal.author_id == user.pk:
        return proposal
    co_student_can_view = (
        proposal.co_student_id == user.pk
        and proposal.status in (Proposal.Status.PENDING, Proposal.Status.APPROVED)
    )
    if not co_student_can_view:
        raise NotAuthorized("User not authorized")
    return proposal
