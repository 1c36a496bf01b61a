import logging

from django.db import IntegrityError, transaction
from django.db.models import Count, Q

from .exceptions import Conflict, NotAuthorized, NotFound, ValidationFailed
from .models import Role, User

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("full_name", "email", "id_number", "phone_number")


def get_user(user_id):
    user = User.objects.select_related("mentor").filter(pk=user_id).first()
    if user is None:
        raise NotFound("User not found")
    return user


def update_profile(user, changes, avatar=None):
    """Apply the editable fields present in ``changes``; an ``avatar`` upload is thumbnailed on save."""
    for field in EDITABLE_FIELDS:
        if field in changes:
            setattr(user, field, changes[field])
    if avatar is not None:
        user.avatar = avatar

    try:
        with transaction.atomic():
            user.save()
    except IntegrityError:
        user.refresh_from_db()
        raise Conflict("That e-mail or ID number is already in use.")

    logger.info("Profile of user %s updated", user.pk)
    return user


def reset_avatar(user):
    if user.avatar:
        user.avatar.delete(save=False)
    user.avatar = None
    user.save(update_fields=["avatar"])
    return user


def mentor_directory():
    """Every mentor with the number of students assigned to them."""
    return (
        User.objects.filter(role=Role.MENTOR)
        .annotate(student_count=Count("mentored_students", filter=Q(mentored_students__role=Role.STUDENT)))
        .order_by("full_name", "username")
    )


def my_students(user):
    qs = User.objects.filter(role=Role.STUDENT)
    if user.is_mentor:
        qs = qs.filter(mentor=user)
    elif not user.is_hod:
        raise NotAuthorized("Only mentors and HODs can list students.")
    return qs.select_related("mentor", "project", "project__mentor").order_by("full_name", "username")


def change_role(hod, user_id, role):
    if role not in Role.values:
        raise ValidationFailed("Invalid role")
    user = get_user(user_id)
    if user.role != role:
        user.role = role
        user.save(update_fields=["role"])
        logger.info("Role of user %s changed to %s by %s", user.pk, role, hod.pk)
    return user
