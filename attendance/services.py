from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from accounts.exceptions import Conflict, NotFound
from accounts.models import User
from accounts.policy import Action, require, require_same_academy
from .models import AttendanceRecord, ClassSchedule, ClassType

logger = logging.getLogger(__name__)


@dataclass
class AttendanceStats:
    total: int
    this_month: int
    by_class_type: List[Tuple[str, int]]
    favorite_class_type: Optional[str]
    current_streak: int
    attendance_dates: List[Dict[str, str]] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "total_attendances": self.total,
            "this_month_attendances": self.this_month,
            "current_streak": self.current_streak,
            "favorite_class_type": self.favorite_class_type,
            "attendances_by_type": [
                {"class_type": class_type, "count": count} for class_type, count in self.by_class_type
            ],
            "attendance_dates": self.attendance_dates,
        }


@dataclass
class BulkAttendanceResult:
    created: int
    skipped: int
    invalid: int


def month_bounds(day: date) -> Tuple[date, date]:
    last_day = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last_day)


def parse_month(value: str) -> Tuple[int, int]:
    """Parse ``YYYY-MM`` into ``(year, month)``."""
    try:
        year_str, month_str = value.split("-")
        year, month = int(year_str), int(month_str)
    except (AttributeError, ValueError):
        raise ValidationError({"month": "Month must use the YYYY-MM format."})
    if not 1 <= month <= 12:
        raise ValidationError({"month": "Month must use the YYYY-MM format."})
    return year, month


def current_streak(distinct_dates: Sequence[date], as_of: date) -> int:
    """
    Consecutive-day streak ending today or yesterday.

    ``distinct_dates`` must be unique and sorted newest first. The caller caps
    how far back it looks, so streaks longer than that window are undercounted.
    """
    if not distinct_dates:
        return 0
    latest = distinct_dates[0]
    if latest not in (as_of, as_of - timedelta(days=1)):
        return 0

    seen = set(distinct_dates)
    streak = 1
    check = latest - timedelta(days=1)
    for _ in range(1, len(distinct_dates)):
        if check not in seen:
            break
        streak += 1
        check -= timedelta(days=1)
    return streak


def favorite_class_type(histogram: Iterable[Tuple[str, int]]) -> Optional[str]:
    # First maximum wins; histogram order decides ties.
    best_type, best_count = None, -1
    for class_type, count in histogram:
        if count > best_count:
            best_type, best_count = class_type, count
    return best_type


def attendance_count(user_id) -> int:
    return AttendanceRecord.objects.filter(user_id=user_id).count()


def calendar_dates(user_id, year: int, month: int) -> List[Dict[str, str]]:
    first, last = month_bounds(date(year, month, 1))
    rows = (
        AttendanceRecord.objects.filter(user_id=user_id, date__range=(first, last))
        .order_by("date", "id")
        .values_list("date", "class_type")
    )
    return [{"date": day.isoformat(), "class_type": class_type} for day, class_type in rows]


def compute_stats(user_id, as_of: Optional[date] = None) -> AttendanceStats:
    as_of = as_of or timezone.localdate()
    records = AttendanceRecord.objects.filter(user_id=user_id)
    first, last = month_bounds(as_of)

    histogram = [
        (row["class_type"], row["count"])
        for row in records.values("class_type").annotate(count=Count("id")).order_by("class_type")
    ]
    lookback = getattr(settings, "ATTENDANCE_STREAK_LOOKBACK", 60)
    recent_dates = list(
        records.filter(date__lte=as_of)
        .order_by("-date")
        .values_list("date", flat=True)
        .distinct()[:lookback]
    )

    return AttendanceStats(
        total=records.count(),
        this_month=records.filter(date__range=(first, last)).count(),
        by_class_type=histogram,
        favorite_class_type=favorite_class_type(histogram),
        current_streak=current_streak(recent_dates, as_of),
        attendance_dates=calendar_dates(user_id, as_of.year, as_of.month),
    )


def attendance_stats(*, actor: User, user_id=None, as_of: Optional[date] = None) -> AttendanceStats:
    target_id = user_id or actor.pk
    if target_id != actor.pk:
        require(actor, Action.VIEW_OTHERS)
        member = User.objects.filter(pk=target_id).first()
        if member is None:
            raise NotFound("User")
        require_same_academy(actor, member.academy_id, "member")
    return compute_stats(target_id, as_of)


def _check_class_type(class_type: str) -> None:
    if class_type not in ClassType.values:
        raise ValidationError({"class_type": f"Unknown class type {class_type!r}."})


def _active_member(actor: User, user_id) -> User:
    member = User.objects.filter(pk=user_id, academy_id=actor.academy_id, is_active=True).first()
    if member is None or actor.academy_id is None:
        raise NotFound("User")
    return member


def _schedule_for(actor: User, schedule_id) -> Optional[ClassSchedule]:
    if not schedule_id:
        return None
    schedule = ClassSchedule.objects.filter(pk=schedule_id, academy_id=actor.academy_id).first()
    if schedule is None:
        raise NotFound("Class schedule")
    return schedule


def record_attendance(
    *,
    actor: User,
    user_id,
    on_date: date,
    class_type: str,
    schedule_id=None,
    notes: str = "",
) -> AttendanceRecord:
    require(actor, Action.MANAGE_ATTENDANCE)
    _check_class_type(class_type)
    member = _active_member(actor, user_id)
    schedule = _schedule_for(actor, schedule_id)

    duplicate_message = "Attendance already exists for this user, date and class type."
    if AttendanceRecord.objects.filter(user=member, date=on_date, class_type=class_type).exists():
        raise Conflict(duplicate_message)
    try:
        with transaction.atomic():
            record = AttendanceRecord.objects.create(
                user=member,
                date=on_date,
                class_type=class_type,
                schedule=schedule,
                notes=notes or "",
                registered_by=actor,
            )
    except IntegrityError as exc:
        raise Conflict(duplicate_message) from exc
    logger.info("Attendance %s recorded for user %s on %s by %s", class_type, member.pk, on_date, actor.pk)
    return record


def record_bulk_attendance(
    *,
    actor: User,
    user_ids: Sequence,
    on_date: date,
    class_type: str,
    schedule_id=None,
) -> BulkAttendanceResult:
    require(actor, Action.MANAGE_ATTENDANCE)
    if not user_ids:
        raise ValidationError({"user_ids": "At least one user is required."})
    limit = getattr(settings, "ATTENDANCE_BULK_MAX", 100)
    if len(user_ids) > limit:
        raise ValidationError({"user_ids": f"At most {limit} users can be registered at once."})
    _check_class_type(class_type)
    schedule = _schedule_for(actor, schedule_id)

    requested = set(user_ids)
    valid_ids = []
    if actor.academy_id is not None:
        valid_ids = list(
            User.objects.filter(pk__in=requested, academy_id=actor.academy_id, is_active=True).values_list(
                "pk", flat=True
            )
        )
    if not valid_ids:
        raise ValidationError({"user_ids": "No valid users found."})

    same_day = AttendanceRecord.objects.filter(user_id__in=valid_ids, date=on_date, class_type=class_type)
    with transaction.atomic():
        existing = set(same_day.values_list("user_id", flat=True))
        AttendanceRecord.objects.bulk_create(
            [
                AttendanceRecord(
                    user_id=user_id,
                    date=on_date,
                    class_type=class_type,
                    schedule=schedule,
                    registered_by=actor,
                )
                for user_id in valid_ids
                if user_id not in existing
            ],
            ignore_conflicts=True,
        )
        created = same_day.count() - len(existing)

    result = BulkAttendanceResult(
        created=created,
        skipped=len(valid_ids) - created,
        invalid=len(requested) - len(valid_ids),
    )
    logger.info(
        "Bulk attendance %s on %s by %s: %s created, %s skipped",
        class_type,
        on_date,
        actor.pk,
        result.created,
        result.skipped,
    )
    return result


def delete_attendance(*, actor: User, record_id) -> None:
    require(actor, Action.MANAGE_ATTENDANCE)
    record = AttendanceRecord.objects.select_related("user").filter(pk=record_id).first()
    if record is None:
        raise NotFound("Attendance record")
    require_same_academy(actor, record.user.academy_id, "attendance record")
    record.delete()
    logger.info("Attendance record %s deleted by %s", record_id, actor.pk)


def list_attendance(*, actor: User, user_id=None, month: Optional[str] = None, class_type: Optional[str] = None):
    records = AttendanceRecord.objects.select_related("user", "schedule", "registered_by")
    if actor.role == User.Role.STUDENT:
        records = records.filter(user=actor)
    elif actor.academy_id is None:
        return records.none()
    else:
        records = records.filter(user__academy_id=actor.academy_id)
        if user_id:
            records = records.filter(user_id=user_id)
    if month:
        year, month_num = parse_month(month)
        first, last = month_bounds(date(year, month_num, 1))
        records = records.filter(date__range=(first, last))
    if class_type:
        _check_class_type(class_type)
        records = records.filter(class_type=class_type)
    return records.order_by("-date", "-id")
