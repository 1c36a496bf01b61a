import logging

from .meetings import materialize_for_user

logger = logging.getLogger(__name__)


class MeetingStatusMiddleware:
    """
    Brings meetings the caller can see up to date (held / expired) before any
    meeting endpoint runs. Add 'portal.middleware.MeetingStatusMiddleware'
    after AuthenticationMiddleware.
    """
    prefix = "/api/meetings"

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, "user", None)
        if request.path.startswith(self.prefix) and user is not None and user.is_authenticated:
            changed = materialize_for_user(user)
            if changed:
                logger.debug("Materialized %d meeting(s) for user %s", changed, user.pk)
        return self.get_response(request)
