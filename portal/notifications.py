"""
Best-effort fan-out of state-change events to connected users.

Every connected socket joins ``user_<id>``; HODs also join ``hods`` and every
socket joins ``broadcast`` (see ``portal.consumers``). Delivery failures are
logged and dropped: a notification never fails the change that triggered it.
"""
import json
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.mail import send_mail
from django.core.serializers.json import DjangoJSONEncoder

logger = logging.getLogger(__name__)

HOD_GROUP = "hods"
BROADCAST_GROUP = "broadcast"


def user_group(user_id):
    return f"user_{user_id}"


def _send(group, event, payload):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    # round-trip through the JSON encoder so datetimes survive msgpack layers
    message = json.loads(json.dumps(payload, cls=DjangoJSONEncoder)) if payload is not None else None
    async_to_sync(channel_layer.group_send)(group, {
        "type": "notify",
        "event": event,
        "payload": message,
    })


def notify_users(user_ids, event, payload=None):
    """Deliver ``event`` to each distinct user id. Never raises."""
    for uid in {str(u) for u in user_ids if u}:
        try:
            _send(user_group(uid), event, payload)
        except Exception:
            logger.warning("Failed to deliver %s to user %s", event, uid, exc_info=True)


def notify_hods(event, payload=None):
    try:
        _send(HOD_GROUP, event, payload)
    except Exception:
        logger.warning("Failed to deliver %s to HODs", event, exc_info=True)


def broadcast(event, payload=None):
    try:
        _send(BROADCAST_GROUP, event, payload)
    except Exception:
        logger.warning("Failed to broadcast %s", event, exc_info=True)


def email_users(users, subject, message):
    recipients = [u.email for u in users if u and u.email]
    if not recipients:
        return
    try:
        send_mail(
            subject=subject,
            message=message + "\n\nRegards,\nProject Portal\n\n*This is a system generated Email. Please do not reply.*\n",
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=recipients,
            fail_silently=True,
        )
    except Exception:
        logger.warning("Failed to e-mail %s", recipients, exc_info=True)
