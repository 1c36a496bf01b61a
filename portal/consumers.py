import json

from channels.generic.websocket import AsyncWebsocketConsumer
from django.core.serializers.json import DjangoJSONEncoder

from .notifications import BROADCAST_GROUP, HOD_GROUP, user_group


class NotificationConsumer(AsyncWebsocketConsumer):
    """Pushes portal events to the session owner. Read-only: clients never send."""

    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            await self.close()
            return

        self.groups_joined = [user_group(user.id), BROADCAST_GROUP]
        if getattr(user, "role", None) == "hod":
            self.groups_joined.append(HOD_GROUP)

        for group in self.groups_joined:
            await self.channel_layer.group_add(group, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        for group in getattr(self, "groups_joined", []):
            await self.channel_layer.group_discard(group, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # subscriptions are implicit; keep the socket open for pings
        if text_data == "ping":
            await self.send(text_data="pong")

    # Group event handler (invoked via group_send with type "notify")
    async def notify(self, event):
        await self.send_json({
            "event": event["event"],
            "payload": event.get("payload"),
        })

    async def send_json(self, payload):
        await self.send(text_data=json.dumps(payload, cls=DjangoJSONEncoder))
