from django.http import JsonResponse

from .. import projects
from ..decorators import api_view, cleaned, request_data, role_required
from ..forms import ProjectStatusForm
from ..models import Role
from ..serializers import project_to_dict


@api_view("GET")
@role_required()
def project_list(request):
    return JsonResponse({"projects": [project_to_dict(p) for p in projects.projects_for(request.user)]})


@api_view("GET")
@role_required()
def detail(request, project_id):
    return JsonResponse({"project": project_to_dict(projects.get_project_for(request.user, project_id))})


@api_view("PUT", "POST")
@role_required(Role.MENTOR)
def update_status(request, project_id):
    data = cleaned(ProjectStatusForm(request_data(request)))
    project = projects.update_status(request.user, project_id, data["status"])
    return JsonResponse({"project": project_to_dict(project)})
