from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from . import notifications
from .models import Project, Task
from .serializers import project_to_dict, task_to_dict

TASK_CREATED_EVENT = "taskCreated"
TASK_UPDATED_EVENT = "taskUpdated"
TASK_DELETED_EVENT = "taskDeleted"
PROJECT_UPDATED_EVENT = "projectUpdated"


@receiver(post_save, sender=Task)
def announce_task_saved(sender, instance, created, **kwargs):
    event = TASK_CREATED_EVENT if created else TASK_UPDATED_EVENT
    notifications.notify_users(instance.project.participant_ids(), event, task_to_dict(instance))


@receiver(post_delete, sender=Task)
def announce_task_deleted(sender, instance, **kwargs):
    project = Project.objects.filter(pk=instance.project_id).first()
    if project is None:
        # whole project is going away
        return
    notifications.notify_users(
        project.participant_ids(),
        TASK_DELETED_EVENT,
        {"id": instance.pk, "project_id": instance.project_id, "meeting_id": instance.meeting_id},
    )


@receiver(post_save, sender=Project)
def announce_project_status(sender, instance, created, update_fields=None, **kwargs):
    if created or not update_fields or "status" not in update_fields:
        return
    notifications.notify_users(instance.participant_ids(), PROJECT_UPDATED_EVENT, project_to_dict(instance))
