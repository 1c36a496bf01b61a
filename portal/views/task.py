from django.http import JsonResponse

from .. import tasks
from ..decorators import api_view, cleaned, request_data, role_required
from ..forms import TaskCreateForm, TaskUpdateForm
from ..models import Role
from ..serializers import task_to_dict


@api_view("POST")
@role_required(Role.MENTOR)
def create(request):
    data = cleaned(TaskCreateForm(request_data(request)))
    task = tasks.create_task(
        request.user,
        data["meeting_id"],
        data["title"],
        data.get("due_date"),
        description=data.get("description", ""),
    )
    return JsonResponse({"task": task_to_dict(task)}, status=201)


@api_view("GET")
@role_required(Role.STUDENT, Role.MENTOR)
def project_tasks(request, project_id):
    return JsonResponse({"tasks": [task_to_dict(t) for t in tasks.tasks_for_project(request.user, project_id)]})


@api_view("GET")
@role_required(Role.STUDENT, Role.MENTOR)
def meeting_tasks(request, meeting_id):
    return JsonResponse({"tasks": [task_to_dict(t) for t in tasks.tasks_for_meeting(request.user, meeting_id)]})


@api_view("PUT", "POST")
@role_required(Role.STUDENT, Role.MENTOR)
def complete(request, task_id):
    task = tasks.complete_task(request.user, task_id)
    return JsonResponse({"task": task_to_dict(task)})


@api_view("PUT", "POST")
@role_required(Role.MENTOR)
def reopen(request, task_id):
    task = tasks.reopen_task(request.user, task_id)
    return JsonResponse({"task": task_to_dict(task)})


@api_view("PUT", "PATCH", "DELETE")
@role_required(Role.MENTOR)
def update_or_delete(request, task_id):
    if request.method == "DELETE":
        deleted = tasks.delete_task(request.user, task_id)
        return JsonResponse({"message": "Task deleted", "id": deleted})

    form = TaskUpdateForm(request_data(request))
    cleaned(form)
    task = tasks.update_task(request.user, task_id, form.changes())
    return JsonResponse({"task": task_to_dict(task)})
