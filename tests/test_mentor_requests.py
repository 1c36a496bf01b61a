import pytest

from portal import mentor_requests, notifications
from portal.exceptions import Conflict, NotAuthorized, NotFound
from portal.models import Request

pytestmark = pytest.mark.django_db


def test_request_notifies_hods(student, mentor, sent):
    req = mentor_requests.request_mentor(student, mentor.pk)

    assert req.status == Request.Status.PENDING
    assert [(g, e) for g, e, _ in sent] == [(notifications.HOD_GROUP, mentor_requests.NEW_REQUEST_EVENT)]


def test_one_open_request_at_a_time(student, mentor, hod):
    req = mentor_requests.request_mentor(student, mentor.pk)
    with pytest.raises(Conflict):
        mentor_requests.request_mentor(student, mentor.pk)

    mentor_requests.reject_request(hod, req.pk)
    assert mentor_requests.request_mentor(student, mentor.pk).status == Request.Status.PENDING


def test_approval_assigns_mentor(student, mentor, hod, sent):
    req = mentor_requests.request_mentor(student, mentor.pk)
    sent.clear()

    mentor_requests.approve_request(hod, req.pk)

    student.refresh_from_db()
    assert student.mentor == mentor
    assert {g for g, _, _ in sent} == {notifications.user_group(student.pk), notifications.user_group(mentor.pk)}
    with pytest.raises(Conflict):
        mentor_requests.reject_request(hod, req.pk)


def test_only_students_request_and_only_mentors_are_requested(student, mentor, hod):
    with pytest.raises(NotAuthorized):
        mentor_requests.request_mentor(mentor, mentor.pk)
    with pytest.raises(NotFound):
        mentor_requests.request_mentor(student, hod.pk)


def test_requests_are_scoped_by_role(make_user, student, mentor, hod):
    other = make_user()
    mine = mentor_requests.request_mentor(student, mentor.pk)
    theirs = mentor_requests.request_mentor(other, mentor.pk)

    assert list(mentor_requests.requests_for(student)) == [mine]
    assert set(mentor_requests.requests_for(mentor)) == {mine, theirs}
    assert set(mentor_requests.requests_for(hod)) == {mine, theirs}
