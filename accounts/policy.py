"""
Role capabilities for every mutating (and most reading) operation.

The table is fixed; tenant isolation is checked separately and always
applies, whatever the role.
"""
from __future__ import annotations

import enum

from django.core.exceptions import PermissionDenied

from .exceptions import Unauthorized
from .models import User

Role = User.Role


class Action(enum.Enum):
    MANAGE_EXAM_ENROLLMENT = "manage_exam_enrollment"
    EVALUATE_EXAM = "evaluate_exam"
    EDIT_EXAM = "edit_exam"
    DELETE_EXAM = "delete_exam"
    MANAGE_ATTENDANCE = "manage_attendance"
    CREATE_PROMOTION = "create_promotion"
    REVERSE_PROMOTION = "reverse_promotion"
    VIEW_OWN = "view_own"
    VIEW_OTHERS = "view_others"


_STAFF = frozenset({Role.INSTRUCTOR, Role.ADMIN})
_ADMIN_ONLY = frozenset({Role.ADMIN})
_EVERYONE = frozenset({Role.STUDENT, Role.INSTRUCTOR, Role.ADMIN})

CAPABILITIES = {
    Action.MANAGE_EXAM_ENROLLMENT: _STAFF,
    Action.EVALUATE_EXAM: _STAFF,
    Action.EDIT_EXAM: _STAFF,
    Action.DELETE_EXAM: _ADMIN_ONLY,
    Action.MANAGE_ATTENDANCE: _STAFF,
    Action.CREATE_PROMOTION: _STAFF,
    Action.REVERSE_PROMOTION: _ADMIN_ONLY,
    Action.VIEW_OWN: _EVERYONE,
    Action.VIEW_OTHERS: _STAFF,
}

DENIED_MESSAGES = {
    Action.MANAGE_EXAM_ENROLLMENT: "You do not have permission to manage exam enrollments.",
    Action.EVALUATE_EXAM: "You do not have permission to evaluate exams.",
    Action.EDIT_EXAM: "You do not have permission to create or update exams.",
    Action.DELETE_EXAM: "Only administrators can delete exams.",
    Action.MANAGE_ATTENDANCE: "You do not have permission to manage attendance.",
    Action.CREATE_PROMOTION: "You do not have permission to register promotions.",
    Action.REVERSE_PROMOTION: "Only administrators can delete promotions.",
    Action.VIEW_OTHERS: "You do not have permission to view other members.",
}


def can_perform(role, action: Action) -> bool:
    return Role(role) in CAPABILITIES[action]


def require(actor: User, action: Action) -> None:
    if actor is None or not actor.is_authenticated:
        raise Unauthorized("Authentication required.")
    if not can_perform(actor.role, action):
        raise PermissionDenied(DENIED_MESSAGES.get(action, "You do not have permission."))


def same_academy(actor: User, academy_id) -> bool:
    return actor.academy_id is not None and actor.academy_id == academy_id


def require_same_academy(actor: User, academy_id, resource: str = "resource") -> None:
    if not same_academy(actor, academy_id):
        raise PermissionDenied(f"You do not have access to this {resource}.")


def can_view_member(actor: User, member: User) -> bool:
    if actor.pk == member.pk:
        return True
    return can_perform(actor.role, Action.VIEW_OTHERS) and same_academy(actor, member.academy_id)
