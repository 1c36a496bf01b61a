import pytest

from portal import notifications, projects, signals
from portal.exceptions import NotAuthorized, ValidationFailed
from portal.models import Project, Role

pytestmark = pytest.mark.django_db


def test_projects_are_scoped_by_role(make_project, make_user, project, student, mentor, hod):
    other = make_project([make_user()], make_user(Role.MENTOR), name="Other")

    assert list(projects.projects_for(student)) == [project]
    assert list(projects.projects_for(mentor)) == [project]
    assert set(projects.projects_for(hod)) == {project, other}


def test_outsider_cannot_open_project(project, make_user):
    with pytest.raises(NotAuthorized):
        projects.get_project_for(make_user(), project.pk)


def test_mentor_moves_project_forward(project, mentor, student, sent):
    updated = projects.update_status(mentor, project.pk, Project.Status.SPECIFICATION)

    assert updated.status == Project.Status.SPECIFICATION
    assert (notifications.user_group(student.pk), signals.PROJECT_UPDATED_EVENT) in {(g, e) for g, e, _ in sent}


def test_status_update_rules(project, make_user, mentor):
    with pytest.raises(ValidationFailed):
        projects.update_status(mentor, project.pk, "shipped")
    with pytest.raises(NotAuthorized):
        projects.update_status(make_user(Role.MENTOR), project.pk, Project.Status.CODE)
