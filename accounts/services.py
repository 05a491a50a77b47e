from __future__ import annotations

from typing import Optional

from django.core.exceptions import ValidationError
from django.db.models import Q

from .belts import Belt
from .models import User
from .policy import Action, require


def list_members(
    *,
    actor: User,
    belt: Optional[str] = None,
    role: Optional[str] = None,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
):
    """Members of the actor's academy, staff only. Used to pick students holding an exam's origin belt."""
    require(actor, Action.VIEW_OTHERS)
    if actor.academy_id is None:
        return User.objects.none()

    members = User.objects.filter(academy_id=actor.academy_id)
    if belt:
        if belt not in Belt.values:
            raise ValidationError({"belt": f"Unknown belt {belt!r}."})
        members = members.filter(belt=belt)
    if role:
        if role not in User.Role.values:
            raise ValidationError({"role": f"Unknown role {role!r}."})
        members = members.filter(role=role)
    if search:
        members = members.filter(
            Q(first_name__icontains=search)
            | Q(last_name__icontains=search)
            | Q(username__icontains=search)
            | Q(email__icontains=search)
        )
    if is_active is not None:
        members = members.filter(is_active=is_active)
    return members.order_by("first_name", "last_name", "username", "id")
