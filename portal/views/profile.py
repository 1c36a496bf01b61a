from django.contrib.auth import authenticate, login, logout
from django.http import JsonResponse
from django.middleware.csrf import get_token
from django.views.decorators.csrf import ensure_csrf_cookie

from .. import profiles
from ..decorators import api_view, cleaned, request_data, role_required
from ..exceptions import NotAuthenticated
from ..forms import LoginForm, ProfileForm
from ..serializers import user_brief, user_to_dict


@api_view("GET")
@ensure_csrf_cookie
def csrf(request):
    """Hands browser clients the CSRF cookie (and token) they must echo on writes."""
    return JsonResponse({"csrfToken": get_token(request)})


@api_view("POST")
def user_login(request):
    data = cleaned(LoginForm(request_data(request)))
    user = authenticate(request, username=data["username"], password=data["password"])
    if user is None:
        raise NotAuthenticated("Invalid username or password")
    login(request, user)
    return JsonResponse({"user": user_to_dict(user)})


@api_view("POST")
def user_logout(request):
    logout(request)
    return JsonResponse({"message": "Logged out"})


@api_view("GET")
@ensure_csrf_cookie
@role_required()
def me(request):
    return JsonResponse({"user": user_to_dict(request.user)})


@api_view("POST")
@role_required()
def edit_profile(request):
    """Multipart so the avatar can ride along with the text fields."""
    form = ProfileForm(request_data(request), request.FILES)
    data = cleaned(form)
    user = profiles.update_profile(request.user, form.changes(), avatar=data.get("avatar"))
    return JsonResponse({"message": "Profile updated", "user": user_to_dict(user)})


@api_view("POST")
@role_required()
def reset_avatar(request):
    user = profiles.reset_avatar(request.user)
    return JsonResponse({"message": "Profile picture reset", "user": user_to_dict(user)})


@api_view("GET")
@role_required()
def user_detail(request, user_id):
    user = profiles.get_user(user_id)
    return JsonResponse({"user": {**user_brief(user), "email": user.email, "role": user.role}})
