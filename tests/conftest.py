"""
Shared fixtures: users per role, a ready-made project, aware local datetimes
and a recorder for outgoing socket events.
"""
import itertools
from datetime import timedelta

import pytest
from django.utils import timezone

from portal import notifications
from portal.models import Meeting, Project, Proposal, Role, User


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path / "media"
    settings.PORTAL_WORKDAY_START_HOUR = 8
    settings.PORTAL_WORKDAY_END_HOUR = 17
    settings.PORTAL_MEETING_BUFFER_MINUTES = 30
    return settings.MEDIA_ROOT


@pytest.fixture
def sent(monkeypatch):
    """Every (group, event, payload) handed to the channel layer."""
    events = []
    monkeypatch.setattr(notifications, "_send", lambda group, event, payload: events.append((group, event, payload)))
    return events


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role=Role.STUDENT, **kwargs):
        n = next(counter)
        name = f"{role}{n}"
        kwargs.setdefault("username", name)
        kwargs.setdefault("full_name", name.title())
        kwargs.setdefault("email", f"{name}@example.com")
        kwargs.setdefault("id_number", str(300000 + n) if role == Role.STUDENT else None)
        return User.objects.create_user(password="pass12345", role=role, **kwargs)

    return _make


@pytest.fixture
def student(make_user):
    return make_user(Role.STUDENT)


@pytest.fixture
def co_student(make_user):
    return make_user(Role.STUDENT)


@pytest.fixture
def mentor(make_user):
    return make_user(Role.MENTOR)


@pytest.fixture
def hod(make_user):
    return make_user(Role.HOD)


@pytest.fixture
def when():
    """Aware datetime ``days`` from today at ``hour:minute`` local time."""
    def _when(days=1, hour=10, minute=0):
        day = timezone.localtime() + timedelta(days=days)
        return day.replace(hour=hour, minute=minute, second=0, microsecond=0)
    return _when


@pytest.fixture
def make_project(db):
    def _make(students, mentor, name="Smart Campus"):
        proposal = Proposal.objects.create(
            project_name=name,
            author=students[0],
            co_student=students[1] if len(students) > 1 else None,
            status=Proposal.Status.APPROVED,
        )
        project = Project.objects.create(
            name=name,
            mentor=mentor,
            proposal=proposal,
            student_names=[s.display_name for s in students],
            mentor_name=mentor.display_name,
        )
        project.students.set(students)
        User.objects.filter(pk__in=[s.pk for s in students]).update(project=project, mentor=mentor)
        for s in students:
            s.refresh_from_db()
        return project
    return _make


@pytest.fixture
def project(make_project, student, co_student, mentor):
    return make_project([student, co_student], mentor)


@pytest.fixture
def make_meeting(db):
    """Insert a meeting directly, bypassing the scheduling rules (e.g. for past dates)."""
    def _make(project, proposed_date, status=Meeting.Status.PENDING, proposer=None):
        meeting = Meeting.objects.create(
            project=project,
            proposer=proposer or project.students.first(),
            mentor=project.mentor,
            proposed_date=proposed_date,
            status=status,
        )
        meeting.attendees.set(list(project.students.all()) + [project.mentor])
        return meeting
    return _make
