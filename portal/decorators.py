import json
import logging
from functools import wraps

from django.http import JsonResponse, QueryDict

from .exceptions import NotAuthenticated, NotAuthorized, PortalError, ValidationFailed

logger = logging.getLogger(__name__)


def api_view(*methods):
    """
    JSON endpoint wrapper: enforces the allowed HTTP methods and renders any
    ``PortalError`` raised below it as ``{"message": ...}`` with its status.
    """
    def decorator(view):
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            if methods and request.method not in methods:
                return JsonResponse({"message": f"{request.method} not allowed"}, status=405)
            try:
                return view(request, *args, **kwargs)
            except PortalError as exc:
                if exc.status_code >= 500:
                    logger.error("%s %s failed: %s", request.method, request.path, exc.message)
                body = {"message": exc.message}
                if getattr(exc, "errors", None):
                    body["errors"] = exc.errors
                return JsonResponse(body, status=exc.status_code)
        return wrapper
    return decorator


def role_required(*roles):
    """Logged-in users only; when ``roles`` are given the user's role must be one of them."""
    def decorator(view):
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            user = request.user
            if not user.is_authenticated:
                raise NotAuthenticated()
            if roles and user.role not in roles:
                raise NotAuthorized("Access denied")
            return view(request, *args, **kwargs)
        return wrapper
    return decorator


def request_data(request):
    """Body of a JSON request, or the form fields of a multipart/urlencoded one.

    Django only parses form bodies for POST, so urlencoded PUT and PATCH
    bodies are decoded here.
    """
    if request.content_type == "application/json":
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except ValueError:
            raise ValidationFailed("Malformed JSON body.")
        if not isinstance(data, dict):
            raise ValidationFailed("Expected a JSON object.")
        return data
    if request.method in ("PUT", "PATCH"):
        return QueryDict(request.body, encoding=request.encoding)
    return request.POST


def cleaned(form):
    """``form.cleaned_data`` if the form is valid, else ValidationFailed with the field errors."""
    if not form.is_valid():
        errors = {field: [str(e) for e in errs] for field, errs in form.errors.items()}
        first = next(iter(errors.values()))[0]
        raise ValidationFailed(first, errors=errors)
    return form.cleaned_data
