from django.http import FileResponse, JsonResponse

from .. import proposals
from ..decorators import api_view, cleaned, request_data, role_required
from ..eligibility import check_student_eligibility, eligible_co_students
from ..exceptions import ValidationFailed
from ..forms import ApproveForm, ProposalDraftForm, RejectForm, UploadForm
from ..models import Role
from ..serializers import file_to_dict, project_to_dict, proposal_to_dict, user_brief


@api_view("POST")
@role_required(Role.STUDENT)
def upload_file(request):
    form = UploadForm(request.POST, request.FILES)
    data = cleaned(form)
    f = proposals.upload_attachment(request.user, data["proposal_pdf"])
    return JsonResponse({"file": file_to_dict(f)}, status=201)


@api_view("GET")
@role_required()
def download_file(request, file_id):
    f = proposals.get_file_for(request.user, file_id)
    return FileResponse(f.upload.open("rb"), content_type=f.mime, filename=f.original_name)


@api_view("POST")
@role_required(Role.STUDENT)
def save_draft(request):
    form = ProposalDraftForm(request_data(request))
    cleaned(form)
    proposal = proposals.save_draft(request.user, form.changes(), proposal_id=form.cleaned_data.get("proposal_id"))
    return JsonResponse({"proposal": proposal_to_dict(proposal)})


@api_view("PUT", "POST")
@role_required(Role.STUDENT)
def submit(request, proposal_id):
    proposal = proposals.submit(request.user, proposal_id)
    return JsonResponse({"message": "Proposal submitted", "proposal": proposal_to_dict(proposal)})


@api_view("GET")
@role_required()
def eligible_co_students_list(request):
    students = eligible_co_students(exclude=request.user)
    return JsonResponse({"students": [{**user_brief(s), "id_number": s.id_number} for s in students]})


@api_view("GET")
@role_required()
def check_eligibility(request, student_id):
    result = check_student_eligibility(student_id)
    return JsonResponse({"eligible": result.eligible, "reason": result.reason or None})


@api_view("GET")
@role_required(Role.STUDENT)
def my_proposals(request):
    return JsonResponse({"proposals": [proposal_to_dict(p) for p in proposals.my_proposals(request.user)]})


@api_view("GET")
@role_required(Role.HOD)
def queue(request):
    return JsonResponse({"proposals": [proposal_to_dict(p) for p in proposals.pending_queue()]})


@api_view("GET")
@role_required()
def detail(request, proposal_id):
    proposal = proposals.get_proposal_for(request.user, proposal_id)
    return JsonResponse({"proposal": proposal_to_dict(proposal)})


@api_view("PUT", "POST")
@role_required(Role.HOD)
def approve(request, proposal_id):
    data = cleaned(ApproveForm(request_data(request)))
    project = proposals.approve(request.user, proposal_id, mentor_id=data.get("mentor_id"))
    return JsonResponse({"message": "Proposal approved", "project": project_to_dict(project)})


@api_view("PUT", "POST")
@role_required(Role.HOD)
def reject(request, proposal_id):
    form = RejectForm(request_data(request))
    if not form.is_valid():
        raise ValidationFailed("Rejection reason is required")
    proposal = proposals.reject(request.user, proposal_id, form.cleaned_data["reason"])
    return JsonResponse({"message": "Proposal rejected", "proposal": proposal_to_dict(proposal)})
