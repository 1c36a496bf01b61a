"""
Error taxonomy shared by the lifecycle engines and the JSON views.

Engines raise these; ``portal.decorators.api_view`` turns them into
``JsonResponse({"message": ...}, status=...)``.
"""


class PortalError(Exception):
    status_code = 400
    default_message = "Request could not be processed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(PortalError):
    status_code = 400
    default_message = "Invalid input."

    def __init__(self, message=None, errors=None):
        super().__init__(message)
        self.errors = errors or {}


class NotAuthenticated(PortalError):
    status_code = 401
    default_message = "Authentication required."


class NotAuthorized(PortalError):
    status_code = 403
    default_message = "Forbidden."


class NotFound(PortalError):
    status_code = 404
    default_message = "Not found."


class Conflict(PortalError):
    status_code = 409
    default_message = "Conflict."


class TransactionFailed(PortalError):
    status_code = 500
    default_message = "The operation failed and no changes were made."
