from django.http import JsonResponse

from .. import meetings
from ..decorators import api_view, cleaned, request_data, role_required
from ..forms import MeetingProposeForm, RescheduleForm
from ..models import Role
from ..serializers import meeting_to_dict


def _meetings_response(qs):
    return JsonResponse({"meetings": [meeting_to_dict(m) for m in qs]})


@api_view("GET")
@role_required(Role.HOD)
def all_meetings(request):
    return _meetings_response(meetings.all_meetings())


@api_view("POST")
@role_required(Role.STUDENT, Role.MENTOR)
def propose(request):
    data = cleaned(MeetingProposeForm(request_data(request)))
    meeting = meetings.propose(request.user, data["project_id"], data["proposed_date"])
    return JsonResponse({"message": "Meeting proposed", "meeting": meeting_to_dict(meeting)}, status=201)


@api_view("GET")
@role_required()
def project_meetings(request, project_id):
    return _meetings_response(meetings.meetings_for_project(request.user, project_id))


@api_view("GET")
@role_required(Role.MENTOR)
def my_mentor_meetings(request):
    return _meetings_response(meetings.meetings_for_mentor(request.user))


@api_view("GET")
@role_required()
def detail(request, meeting_id):
    meeting = meetings.get_meeting_for(request.user, meeting_id)
    return JsonResponse({"meeting": meeting_to_dict(meeting)})


@api_view("PUT", "POST")
@role_required(Role.STUDENT, Role.MENTOR)
def approve(request, meeting_id):
    meeting = meetings.approve(request.user, meeting_id)
    return JsonResponse({"message": "Meeting approved", "meeting": meeting_to_dict(meeting)})


@api_view("PUT", "POST")
@role_required(Role.STUDENT, Role.MENTOR)
def decline(request, meeting_id):
    meeting = meetings.decline(request.user, meeting_id)
    return JsonResponse({"message": "Meeting declined", "meeting": meeting_to_dict(meeting)})


@api_view("PUT", "POST")
@role_required(Role.STUDENT, Role.MENTOR)
def reschedule(request, meeting_id):
    data = cleaned(RescheduleForm(request_data(request)))
    meeting = meetings.reschedule(request.user, meeting_id, data["proposed_date"], data.get("reason", ""))
    return JsonResponse({"message": "Meeting rescheduled", "meeting": meeting_to_dict(meeting)})
