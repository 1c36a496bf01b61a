from datetime import timedelta, timezone as dt_timezone

from django.conf import settings
from django.utils import timezone


def to_local(dt):
    """Make ``dt`` aware (UTC if naive) and convert it to the portal's local time."""
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt, dt_timezone.utc)
    return timezone.localtime(dt)


def format_local(dt):
    if not dt:
        return ""
    return to_local(dt).strftime("%d-%m-%Y %H:%M")


def within_working_hours(dt):
    """Meetings may start from the opening hour up to, but not at, the closing hour."""
    hour = to_local(dt).hour
    return settings.PORTAL_WORKDAY_START_HOUR <= hour < settings.PORTAL_WORKDAY_END_HOUR


def meeting_buffer():
    return timedelta(minutes=settings.PORTAL_MEETING_BUFFER_MINUTES)


def clashes(dt, others):
    """First datetime in ``others`` that is closer to ``dt`` than the meeting buffer."""
    buffer = meeting_buffer()
    for other in others:
        if abs(other - dt) < buffer:
            return other
    return None
