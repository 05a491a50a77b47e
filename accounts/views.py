from django.core.exceptions import ValidationError

from dojo.api import api_view, paginate
from . import services
from .models import User


def serialize_member(user: User) -> dict:
    return {
        "id": user.pk,
        "name": str(user),
        "email": user.email,
        "role": user.role,
        "belt": user.belt,
        "stripe": user.stripe,
        "is_active": user.is_active,
        "created_at": user.date_joined.isoformat(),
    }


def _flag(value, name):
    if value in (None, ""):
        return None
    if value.lower() in ("true", "1"):
        return True
    if value.lower() in ("false", "0"):
        return False
    raise ValidationError({name: "Use true or false."})


@api_view(["GET"])
def member_list(request):
    members = services.list_members(
        actor=request.user,
        belt=request.GET.get("belt"),
        role=request.GET.get("role"),
        search=request.GET.get("search"),
        is_active=_flag(request.GET.get("is_active"), "is_active"),
    )
    return paginate(request, members, serialize_member)
