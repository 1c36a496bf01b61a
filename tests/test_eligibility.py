import pytest

from portal import eligibility
from portal.eligibility import check_student_eligibility, eligible_co_students
from portal.models import Proposal

pytestmark = pytest.mark.django_db


def _pending(author, co_student=None, name="Pending idea"):
    return Proposal.objects.create(
        project_name=name, author=author, co_student=co_student, status=Proposal.Status.PENDING
    )


def test_free_student_is_eligible(student):
    result = check_student_eligibility(student.pk)
    assert result.eligible
    assert result.student == student


def test_missing_student_is_reported_not_raised(db):
    result = check_student_eligibility(999999)
    assert not result.eligible
    assert result.reason == eligibility.NOT_FOUND


def test_non_student_is_not_found(mentor):
    assert check_student_eligibility(mentor.pk).reason == eligibility.NOT_FOUND


def test_student_in_project_is_ineligible(project, student):
    result = check_student_eligibility(student.pk)
    assert not result.eligible
    assert result.reason == eligibility.IN_PROJECT


def test_co_student_on_someone_elses_pending_proposal(make_user, student):
    other = make_user()
    _pending(other, co_student=student)
    result = check_student_eligibility(student.pk)
    assert result.reason == eligibility.PENDING_ELSEWHERE


def test_excluded_proposal_is_ignored(student):
    proposal = _pending(student)
    assert not check_student_eligibility(student.pk).eligible
    assert check_student_eligibility(student.pk, exclude_proposal=proposal).eligible
    assert check_student_eligibility(student.pk, exclude_proposal=proposal.pk).eligible


def test_eligible_co_students_filters_busy_students(make_user, make_project, mentor, student):
    free = make_user()
    author = make_user()
    co = make_user()
    in_project = make_user()
    _pending(author, co_student=co)
    make_project([in_project], mentor)

    ids = set(eligible_co_students(exclude=student).values_list("pk", flat=True))
    assert free.pk in ids
    assert student.pk not in ids
    assert not ids & {author.pk, co.pk, in_project.pk, mentor.pk}
