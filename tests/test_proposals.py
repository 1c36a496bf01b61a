import pytest
from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError, IntegrityError, transaction

from portal import notifications, proposals
from portal.eligibility import Eligibility
from portal.exceptions import Conflict, NotAuthorized, NotFound, TransactionFailed, ValidationFailed
from portal.models import Project, Proposal, User

pytestmark = pytest.mark.django_db


def _draft(student, **changes):
    changes.setdefault("project_name", "Smart Parking")
    return proposals.save_draft(student, changes)


def _submitted(student, **changes):
    proposal = _draft(student, **changes)
    return proposals.submit(student, proposal.pk)


# ---------- Drafts ----------

def test_save_draft_snapshots_author(student):
    student.phone_number = "0501234567"
    student.save()

    proposal = _draft(student, background="Cars", co_student=None)

    assert proposal.status == Proposal.Status.DRAFT
    assert proposal.author_full_name == student.display_name
    assert proposal.author_id_number == student.id_number
    assert proposal.mobile_phone == "0501234567"


def test_save_draft_requires_project_name(student):
    with pytest.raises(ValidationFailed):
        proposals.save_draft(student, {"background": "no name"})


def test_save_draft_rejects_self_as_co_student(student):
    with pytest.raises(ValidationFailed):
        _draft(student, co_student=student)


def test_save_draft_only_touches_sent_fields(student, co_student):
    proposal = _draft(student, objectives="Reduce queues", co_student=co_student)
    proposal = proposals.save_draft(student, {"background": "Added later"}, proposal_id=proposal.pk)
    assert proposal.objectives == "Reduce queues"
    assert proposal.co_student == co_student

    proposal = proposals.save_draft(student, {"remove_co_student": True}, proposal_id=proposal.pk)
    assert proposal.co_student is None


def test_other_students_draft_is_not_found(student, co_student):
    proposal = _draft(student)
    with pytest.raises(NotFound):
        proposals.save_draft(co_student, {"project_name": "Mine now"}, proposal_id=proposal.pk)


def test_attachment_is_linked_and_access_checked(student, make_user, mentor):
    upload = SimpleUploadedFile("plan.pdf", b"%PDF-1.4 test", content_type="application/pdf")
    f = proposals.upload_attachment(student, upload)
    proposal = _draft(student, attachment_id=f.pk)

    f.refresh_from_db()
    assert proposal.attachment == f
    assert f.proposal == proposal
    assert proposals.get_file_for(mentor, f.pk) == f
    with pytest.raises(NotAuthorized):
        proposals.get_file_for(make_user(), f.pk)


# ---------- Submission ----------

def test_submit_without_mentor_succeeds_and_notifies(student, sent):
    proposal = _submitted(student)

    assert proposal.status == Proposal.Status.PENDING
    assert proposal.submitted_at is not None
    groups = {group for group, _, _ in sent}
    assert notifications.HOD_GROUP in groups
    assert notifications.user_group(student.pk) in groups
    assert (notifications.BROADCAST_GROUP, proposals.CO_STUDENTS_EVENT, None) in sent


def test_second_submission_while_pending_conflicts(student):
    _submitted(student, project_name="First")
    second = _draft(student, project_name="Second")

    with pytest.raises(Conflict):
        proposals.submit(student, second.pk)

    second.refresh_from_db()
    assert second.status == Proposal.Status.DRAFT


def test_storage_rejects_two_pending_for_one_author(student):
    Proposal.objects.create(project_name="A", author=student, status=Proposal.Status.PENDING)
    with pytest.raises(IntegrityError), transaction.atomic():
        Proposal.objects.create(project_name="B", author=student, status=Proposal.Status.PENDING)


def test_storage_rejects_two_pending_for_one_co_student(student, co_student, make_user):
    Proposal.objects.create(project_name="A", author=student, co_student=co_student, status=Proposal.Status.PENDING)
    with pytest.raises(IntegrityError), transaction.atomic():
        Proposal.objects.create(
            project_name="B", author=make_user(), co_student=co_student, status=Proposal.Status.PENDING
        )


@pytest.fixture
def racing(monkeypatch):
    """Eligibility passes, as it does for two submissions that race each other."""
    monkeypatch.setattr(
        proposals, "check_student_eligibility",
        lambda student_id, exclude_proposal=None: Eligibility(True, "", User.objects.get(pk=student_id)),
    )


def test_lost_race_on_co_student_blames_the_co_student(racing, student, co_student, make_user):
    Proposal.objects.create(
        project_name="Theirs", author=make_user(), co_student=co_student, status=Proposal.Status.PENDING
    )
    proposal = _draft(student, co_student=co_student)

    with pytest.raises(Conflict, match="co-student already has"):
        proposals.submit(student, proposal.pk)

    proposal.refresh_from_db()
    assert proposal.status == Proposal.Status.DRAFT


def test_lost_race_on_author_blames_the_author(racing, student):
    Proposal.objects.create(project_name="Mine", author=student, status=Proposal.Status.PENDING)
    proposal = _draft(student)

    with pytest.raises(Conflict, match="You already have"):
        proposals.submit(student, proposal.pk)


def test_ineligible_co_student_blocks_submission(student, co_student, make_user):
    _submitted(make_user(), co_student=co_student)
    proposal = _draft(student, co_student=co_student)

    with pytest.raises(Conflict):
        proposals.submit(student, proposal.pk)


def test_submit_snapshots_co_student(student, co_student):
    proposal = _submitted(student, co_student=co_student)
    assert proposal.co_student_full_name == co_student.display_name
    assert proposal.co_student_id_number == co_student.id_number


# ---------- Approval ----------

def test_approval_requires_a_mentor(student, hod):
    proposal = _submitted(student)

    with pytest.raises(ValidationFailed):
        proposals.approve(hod, proposal.pk)

    proposal.refresh_from_db()
    assert proposal.status == Proposal.Status.PENDING
    assert not Project.objects.exists()


def test_approval_creates_project(student, co_student, mentor, hod):
    proposal = _submitted(student, co_student=co_student)

    project = proposals.approve(hod, proposal.pk, mentor_id=mentor.pk)

    proposal.refresh_from_db()
    student.refresh_from_db()
    co_student.refresh_from_db()
    assert proposal.status == Proposal.Status.APPROVED
    assert proposal.reviewed_by == hod
    assert project.proposal == proposal
    assert set(project.students.all()) == {student, co_student}
    assert project.mentor == mentor
    assert project.student_names == [student.display_name, co_student.display_name]
    assert project.mentor_name == mentor.display_name
    assert student.project == project and student.mentor == mentor
    assert co_student.project == project
    assert sorted(mail.outbox[0].to) == sorted([student.email, co_student.email])


def test_suggested_mentor_is_used_by_default(student, mentor, hod):
    proposal = _submitted(student, suggested_mentor=mentor)
    project = proposals.approve(hod, proposal.pk)
    assert project.mentor == mentor


def test_approval_rejects_conflicting_pending_proposals(make_user, mentor, hod, sent):
    s1, s2, s3, s4, s5 = (make_user() for _ in range(5))
    p1 = Proposal.objects.create(project_name="P1", author=s1, co_student=s2, status=Proposal.Status.PENDING)
    # storage allows these even though submit() would have refused them
    p2 = Proposal.objects.create(project_name="P2", author=s2, status=Proposal.Status.PENDING)
    p3 = Proposal.objects.create(project_name="P3", author=s3, co_student=s1, status=Proposal.Status.PENDING)
    unrelated = Proposal.objects.create(project_name="P4", author=s4, co_student=s5, status=Proposal.Status.PENDING)

    proposals.approve(hod, p1.pk, mentor_id=mentor.pk)

    for other in (p2, p3):
        other.refresh_from_db()
        assert other.status == Proposal.Status.REJECTED
        assert other.decision_reason == proposals.conflict_reason(p1)
        assert "P1" in other.decision_reason
        assert other.invalidated_by_id == p1.pk
        assert other.invalidated_at is not None
    unrelated.refresh_from_db()
    assert unrelated.status == Proposal.Status.PENDING
    assert notifications.user_group(s3.pk) in {group for group, _, _ in sent}


def test_failed_approval_rolls_everything_back(student, co_student, make_user, mentor, hod, monkeypatch, sent):
    proposal = _submitted(student, co_student=co_student)
    other = Proposal.objects.create(
        project_name="Other", author=make_user(), co_student=student, status=Proposal.Status.PENDING
    )
    sent.clear()

    def boom(plan):
        raise DatabaseError("disk full")

    monkeypatch.setattr(proposals, "_reject_conflicting", boom)

    with pytest.raises(TransactionFailed):
        proposals.approve(hod, proposal.pk, mentor_id=mentor.pk)

    proposal.refresh_from_db()
    other.refresh_from_db()
    assert proposal.status == Proposal.Status.PENDING
    assert other.status == Proposal.Status.PENDING
    assert not Project.objects.exists()
    assert not User.objects.filter(pk__in=[student.pk, co_student.pk], project__isnull=False).exists()
    assert sent == []


def test_cannot_approve_twice(student, mentor, hod):
    proposal = _submitted(student)
    proposals.approve(hod, proposal.pk, mentor_id=mentor.pk)
    with pytest.raises(Conflict):
        proposals.approve(hod, proposal.pk, mentor_id=mentor.pk)


def test_every_project_points_at_an_approved_proposal(student, co_student, mentor, hod):
    proposals.approve(hod, _submitted(student).pk, mentor_id=mentor.pk)
    proposals.approve(hod, _submitted(co_student).pk, mentor_id=mentor.pk)
    for project in Project.objects.select_related("proposal"):
        assert project.proposal.status == Proposal.Status.APPROVED


# ---------- Rejection and resubmission ----------

def test_reject_requires_reason(student, hod):
    proposal = _submitted(student)
    with pytest.raises(ValidationFailed):
        proposals.reject(hod, proposal.pk, "  ")


def test_rejected_proposal_can_be_revised_and_resubmitted(student, hod):
    proposal = _submitted(student)
    proposals.reject(hod, proposal.pk, "Too broad")
    proposal.refresh_from_db()
    assert proposal.status == Proposal.Status.REJECTED
    assert proposal.decision_reason == "Too broad"
    assert mail.outbox[-1].to == [student.email]

    proposal = proposals.save_draft(student, {"objectives": "Narrower"}, proposal_id=proposal.pk)
    assert proposal.status == Proposal.Status.DRAFT

    proposal = proposals.submit(student, proposal.pk)
    assert proposal.status == Proposal.Status.PENDING
    assert proposal.decision == ""
    assert proposal.decision_reason == ""
    assert proposal.reviewed_by is None


# ---------- Queries ----------

def test_co_student_sees_pending_but_not_draft(student, co_student):
    proposal = _draft(student, co_student=co_student)
    with pytest.raises(NotAuthorized):
        proposals.get_proposal_for(co_student, proposal.pk)
    assert proposal not in proposals.my_proposals(co_student)

    proposals.submit(student, proposal.pk)
    assert proposals.get_proposal_for(co_student, proposal.pk) == proposal
    assert proposal in proposals.my_proposals(co_student)


def test_queue_lists_pending_only(student, co_student, hod):
    pending = _submitted(student)
    _draft(co_student)
    assert list(proposals.pending_queue()) == [pending]
