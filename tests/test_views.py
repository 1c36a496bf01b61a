import json

import pytest
from django.test import Client
from django.urls import reverse

from portal.models import Meeting, Project, Proposal

pytestmark = pytest.mark.django_db


def _put(client, url, data=None):
    return client.put(url, data or {}, content_type="application/json")


def _post(client, url, data=None):
    return client.post(url, data or {}, content_type="application/json")


def test_anonymous_gets_401(client):
    response = client.get(reverse("portal:me"))
    assert response.status_code == 401
    assert response.json() == {"message": "Authentication required."}


def test_wrong_role_gets_403(client, student):
    client.force_login(student)
    response = client.get(reverse("portal:proposal-queue"))
    assert response.status_code == 403


def test_wrong_method_gets_405(client, student):
    client.force_login(student)
    assert client.get(reverse("portal:proposal-draft")).status_code == 405


def test_login_and_me(client, student):
    response = _post(client, reverse("portal:login"), {"username": student.username, "password": "pass12345"})
    assert response.status_code == 200
    assert client.get(reverse("portal:me")).json()["user"]["id"] == student.pk

    bad = _post(client, reverse("portal:login"), {"username": student.username, "password": "nope"})
    assert bad.status_code == 401


def test_browser_login_with_csrf_token(student):
    browser = Client(enforce_csrf_checks=True)
    credentials = json.dumps({"username": student.username, "password": "pass12345"})

    refused = browser.post(reverse("portal:login"), credentials, content_type="application/json")
    assert refused.status_code == 403

    token = browser.get(reverse("portal:csrf")).json()["csrfToken"]
    assert "csrftoken" in browser.cookies

    response = browser.post(reverse("portal:login"), credentials, content_type="application/json",
                            HTTP_X_CSRFTOKEN=token)
    assert response.status_code == 200

    # login rotates the token
    token = browser.cookies["csrftoken"].value
    response = browser.post(reverse("portal:logout"), content_type="application/json", HTTP_X_CSRFTOKEN=token)
    assert response.status_code == 200


def test_me_sets_csrf_cookie(student):
    browser = Client(enforce_csrf_checks=True)
    browser.force_login(student)
    assert browser.get(reverse("portal:me")).status_code == 200
    assert "csrftoken" in browser.cookies


def test_proposal_round_trip_over_http(client, student, mentor, hod):
    client.force_login(student)
    response = _post(client, reverse("portal:proposal-draft"), {
        "project_name": "Library Bot",
        "objectives": "Answer questions",
        "suggested_mentor": mentor.pk,
    })
    assert response.status_code == 200
    proposal_id = response.json()["proposal"]["id"]

    response = _put(client, reverse("portal:proposal-submit", args=[proposal_id]))
    assert response.status_code == 200
    assert response.json()["proposal"]["status"] == Proposal.Status.PENDING

    client.force_login(hod)
    queue = client.get(reverse("portal:proposal-queue")).json()["proposals"]
    assert [p["id"] for p in queue] == [proposal_id]

    response = _put(client, reverse("portal:proposal-approve", args=[proposal_id]))
    assert response.status_code == 200
    project = response.json()["project"]
    assert project["mentor"]["id"] == mentor.pk
    assert project["snapshots"]["student_names"] == [student.display_name]


def test_second_submission_is_409(client, student):
    client.force_login(student)
    first = _post(client, reverse("portal:proposal-draft"), {"project_name": "One"}).json()["proposal"]["id"]
    second = _post(client, reverse("portal:proposal-draft"), {"project_name": "Two"}).json()["proposal"]["id"]
    assert _put(client, reverse("portal:proposal-submit", args=[first])).status_code == 200
    response = _put(client, reverse("portal:proposal-submit", args=[second]))
    assert response.status_code == 409
    assert "message" in response.json()


def test_reject_without_reason_is_400(client, student, hod):
    proposal = Proposal.objects.create(project_name="X", author=student, status=Proposal.Status.PENDING)
    client.force_login(hod)
    response = _put(client, reverse("portal:proposal-reject", args=[proposal.pk]), {"reason": ""})
    assert response.status_code == 400


def test_pdf_upload_validation(client, student):
    from django.core.files.uploadedfile import SimpleUploadedFile

    client.force_login(student)
    bad = SimpleUploadedFile("notes.txt", b"hello", content_type="text/plain")
    response = client.post(reverse("portal:proposal-upload"), {"proposal_pdf": bad})
    assert response.status_code == 400
    assert "proposal_pdf" in response.json()["errors"]

    good = SimpleUploadedFile("plan.pdf", b"%PDF-1.4", content_type="application/pdf")
    response = client.post(reverse("portal:proposal-upload"), {"proposal_pdf": good})
    assert response.status_code == 201
    assert response.json()["file"]["original_name"] == "plan.pdf"


def test_meeting_negotiation_over_http(client, project, student, mentor, when):
    client.force_login(student)
    response = _post(client, reverse("portal:meeting-propose"), {
        "project_id": project.pk,
        "proposed_date": when(days=2, hour=11).isoformat(),
    })
    assert response.status_code == 201
    meeting = response.json()["meeting"]
    assert meeting["awaiting_approval_from"] == "mentor"

    assert _put(client, reverse("portal:meeting-approve", args=[meeting["id"]])).status_code == 403

    client.force_login(mentor)
    response = _put(client, reverse("portal:meeting-approve", args=[meeting["id"]]))
    assert response.status_code == 200
    assert response.json()["meeting"]["status"] == Meeting.Status.ACCEPTED


def test_meeting_outside_hours_is_400(client, project, student, when):
    client.force_login(student)
    response = _post(client, reverse("portal:meeting-propose"), {
        "project_id": project.pk,
        "proposed_date": when(days=2, hour=19).isoformat(),
    })
    assert response.status_code == 400


def test_middleware_materializes_before_meeting_routes(client, project, student, make_meeting, when):
    meeting = make_meeting(project, when(days=-1), status=Meeting.Status.ACCEPTED)
    client.force_login(student)

    client.get("/api/meetings/does-not-exist/")

    meeting.refresh_from_db()
    assert meeting.status == Meeting.Status.HELD


def test_task_flow_over_http(client, project, student, mentor, make_meeting, when):
    meeting = make_meeting(project, when(days=-1), status=Meeting.Status.HELD)
    client.force_login(mentor)

    response = _post(client, reverse("portal:task-create"), {"meeting_id": meeting.pk, "title": ""})
    assert response.status_code == 400
    assert "title" in response.json()["errors"]

    response = _post(client, reverse("portal:task-create"), {
        "meeting_id": meeting.pk,
        "title": "Wireframes",
        "due_date": when(days=4).isoformat(),
    })
    assert response.status_code == 201
    task_id = response.json()["task"]["id"]

    response = client.patch(reverse("portal:task-detail", args=[task_id]), {"due_date": None},
                            content_type="application/json")
    assert response.status_code == 400

    client.force_login(student)
    response = _put(client, reverse("portal:task-complete", args=[task_id]))
    assert response.json()["task"]["status"] == "completed"
    tasks = client.get(reverse("portal:project-tasks", args=[project.pk])).json()["tasks"]
    assert [t["id"] for t in tasks] == [task_id]

    client.force_login(mentor)
    assert client.delete(reverse("portal:task-detail", args=[task_id])).status_code == 200


def test_project_status_over_http(client, project, mentor):
    client.force_login(mentor)
    response = _put(client, reverse("portal:project-status", args=[project.pk]), {"status": "code"})
    assert response.status_code == 200
    assert Project.objects.get(pk=project.pk).status == Project.Status.CODE

    response = _put(client, reverse("portal:project-status", args=[project.pk]), {"status": "bogus"})
    assert response.status_code == 400


def test_form_encoded_put_is_read(client, project, mentor):
    client.force_login(mentor)
    response = client.put(reverse("portal:project-status", args=[project.pk]), "status=presentation",
                          content_type="application/x-www-form-urlencoded")
    assert response.status_code == 200
    assert response.json()["project"]["status"] == Project.Status.PRESENTATION


def test_hod_exports(client, project, hod):
    client.force_login(hod)

    response = client.get(reverse("portal:hod-export-excel"))
    assert response.status_code == 200
    assert response["Content-Type"].startswith("application/vnd.openxmlformats")

    response = client.get(reverse("portal:hod-export-pdf"))
    assert response.status_code == 200
    assert response.content.startswith(b"%PDF")

    assert client.get(reverse("portal:hod-dashboard")).json()["projects_by_status"]["proposal"] == 1


def test_mentor_request_over_http(client, student, mentor, hod):
    client.force_login(student)
    response = _post(client, reverse("portal:mentor-requests"), {"mentor_id": mentor.pk})
    assert response.status_code == 201
    request_id = response.json()["request"]["id"]

    client.force_login(hod)
    response = _put(client, reverse("portal:mentor-request-approve", args=[request_id]))
    assert response.json()["request"]["status"] == "approved"
