from django.http import HttpResponse, JsonResponse
from django.utils import timezone

from .. import mentor_requests, profiles, reports
from ..decorators import api_view, cleaned, request_data, role_required
from ..forms import RoleForm
from ..models import Role
from ..serializers import request_to_dict, user_to_dict


@api_view("GET")
@role_required(Role.HOD)
def dashboard(request):
    return JsonResponse(reports.build_dashboard_data())


@api_view("GET")
@role_required(Role.HOD)
def export_excel(request):
    content = reports.export_excel(reports.build_dashboard_data())
    filename = f"project_report_{timezone.localdate():%Y%m%d}.xlsx"
    response = HttpResponse(
        content,
        content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


@api_view("GET")
@role_required(Role.HOD)
def export_pdf(request):
    content = reports.export_pdf(reports.build_dashboard_data(), generated_by=request.user.display_name)
    filename = f"project_report_{timezone.localdate():%d-%m-%Y}.pdf"
    response = HttpResponse(content, content_type="application/pdf")
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


@api_view("PUT", "POST")
@role_required(Role.HOD)
def change_role(request, user_id):
    data = cleaned(RoleForm(request_data(request)))
    user = profiles.change_role(request.user, user_id, data["role"])
    return JsonResponse({"user": user_to_dict(user)})


@api_view("PUT", "POST")
@role_required(Role.HOD)
def approve_request(request, request_id):
    req = mentor_requests.approve_request(request.user, request_id)
    return JsonResponse({"request": request_to_dict(req)})


@api_view("PUT", "POST")
@role_required(Role.HOD)
def reject_request(request, request_id):
    req = mentor_requests.reject_request(request.user, request_id)
    return JsonResponse({"request": request_to_dict(req)})
