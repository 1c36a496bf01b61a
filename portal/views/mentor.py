from django.http import JsonResponse

from .. import mentor_requests, profiles
from ..decorators import api_view, cleaned, request_data, role_required
from ..forms import MentorRequestForm
from ..models import Role
from ..serializers import project_to_dict, request_to_dict, user_brief, user_to_dict


@api_view("GET")
@role_required(Role.STUDENT, Role.HOD)
def mentor_directory(request):
    mentors = profiles.mentor_directory()
    return JsonResponse({
        "mentors": [{**user_brief(m), "email": m.email, "students": m.student_count} for m in mentors]
    })


@api_view("GET")
@role_required(Role.MENTOR, Role.HOD)
def my_students(request):
    students = []
    for s in profiles.my_students(request.user):
        data = user_to_dict(s)
        data["project"] = project_to_dict(s.project) if s.project_id else None
        students.append(data)
    return JsonResponse({"students": students})


@api_view("GET", "POST")
@role_required()
def requests(request):
    if request.method == "POST":
        data = cleaned(MentorRequestForm(request_data(request)))
        req = mentor_requests.request_mentor(request.user, data["mentor_id"])
        return JsonResponse({"request": request_to_dict(req)}, status=201)

    return JsonResponse({"requests": [request_to_dict(r) for r in mentor_requests.requests_for(request.user)]})
