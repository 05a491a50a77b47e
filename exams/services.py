from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Mapping, Optional, Union

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from accounts.belts import Rank
from accounts.exceptions import Conflict, NotFound
from accounts.models import User
from accounts.policy import Action, require, require_same_academy
from attendance.services import attendance_count
from videos.services import completed_video_count
from .models import Exam, ExamEnrollment, Promotion

logger = logging.getLogger(__name__)

UPDATABLE_EXAM_FIELDS = {
    "title",
    "description",
    "date",
    "location",
    "capacity",
    "exam_fee",
    "min_attendances",
    "min_videos_completed",
    "status",
}


@dataclass(frozen=True)
class Evaluation:
    enrollment_id: int
    result: str
    score: Optional[int] = None
    feedback: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping) -> "Evaluation":
        try:
            return cls(
                enrollment_id=data["enrollment_id"],
                result=data["result"],
                score=data.get("score"),
                feedback=data.get("feedback"),
            )
        except (KeyError, TypeError, AttributeError):
            raise ValidationError({"evaluations": "Each evaluation needs an enrollment_id and a result."})


@dataclass
class EvaluationOutcome:
    enrollment_id: int
    result: str
    promoted: bool


@dataclass
class EvaluationSummary:
    results: List[EvaluationOutcome] = field(default_factory=list)
    exam_status: str = Exam.STATUS_IN_PROGRESS

    def _count(self, result: str) -> int:
        return sum(1 for outcome in self.results if outcome.result == result)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def approved(self) -> int:
        return self._count(ExamEnrollment.RESULT_APPROVED)

    @property
    def failed(self) -> int:
        return self._count(ExamEnrollment.RESULT_FAILED)

    @property
    def no_show(self) -> int:
        return self._count(ExamEnrollment.RESULT_NO_SHOW)


@dataclass
class Requirement:
    current: int
    required: Optional[int]

    @property
    def met(self) -> bool:
        return not self.required or self.current >= self.required


@dataclass
class EnrollmentRequirements:
    enrollment: ExamEnrollment
    attendances: Requirement
    videos: Requirement


def _exam_for(actor: User, exam_id, *, lock: bool = False) -> Exam:
    queryset = Exam.objects.select_for_update() if lock else Exam.objects.all()
    exam = queryset.filter(pk=exam_id).first()
    if exam is None:
        raise NotFound("Exam")
    require_same_academy(actor, exam.academy_id, "exam")
    return exam


def _active_member(actor: User, user_id, resource: str = "Student", *, lock: bool = False) -> User:
    if actor.academy_id is None:
        raise NotFound(resource)
    queryset = User.objects.select_for_update() if lock else User.objects.all()
    member = queryset.filter(pk=user_id, academy_id=actor.academy_id, is_active=True).first()
    if member is None:
        raise NotFound(resource)
    return member


# ---------------------------------------------------------------------------
# Exams
# ---------------------------------------------------------------------------


def create_exam(
    *,
    actor: User,
    title: str,
    exam_date: date,
    belt_from: str,
    belt_to: str,
    location: str = "",
    description: str = "",
    capacity: Optional[int] = None,
    exam_fee=None,
    min_attendances: Optional[int] = None,
    min_videos_completed: Optional[int] = None,
) -> Exam:
    require(actor, Action.EDIT_EXAM)
    if actor.academy_id is None:
        raise PermissionDenied("You do not belong to an academy.")
    exam = Exam(
        academy_id=actor.academy_id,
        title=title,
        date=exam_date,
        belt_from=belt_from,
        belt_to=belt_to,
        location=location or "",
        description=description or "",
        capacity=capacity,
        exam_fee=exam_fee,
        min_attendances=min_attendances,
        min_videos_completed=min_videos_completed,
        created_by=actor,
    )
    exam.save()
    logger.info("Exam %s created by %s (%s -> %s)", exam.pk, actor.pk, belt_from, belt_to)
    return exam


def get_exam(*, actor: User, exam_id) -> Exam:
    return _exam_for(actor, exam_id)


def list_exams(*, actor: User, status: Optional[str] = None, belt_to: Optional[str] = None, upcoming: bool = False):
    if actor.academy_id is None:
        return Exam.objects.none()
    exams = Exam.objects.filter(academy_id=actor.academy_id).annotate(enrolled_count=Count("enrollments"))
    if status:
        exams = exams.filter(status=status)
    if belt_to:
        exams = exams.filter(belt_to=belt_to)
    if upcoming:
        exams = exams.filter(date__gte=timezone.localdate(), status__in=Exam.OPEN_STATUSES)
    return exams.order_by("date", "id")


def update_exam(*, actor: User, exam_id, **changes) -> Exam:
    require(actor, Action.EDIT_EXAM)
    unknown = set(changes) - UPDATABLE_EXAM_FIELDS
    if unknown:
        raise ValidationError({name: "This field cannot be changed." for name in sorted(unknown)})

    with transaction.atomic():
        exam = _exam_for(actor, exam_id, lock=True)
        if exam.is_completed:
            raise Conflict("A completed exam cannot be modified.")
        status = changes.get("status")
        if status is not None:
            if status not in dict(Exam.STATUS_CHOICES):
                raise ValidationError({"status": f"Unknown exam status {status!r}."})
            if not exam.can_transition_to(status):
                raise Conflict(f"An exam cannot move from {exam.status} to {status}.")
        previous_status = exam.status
        for name, value in changes.items():
            setattr(exam, name, value)
        exam.save()

    if exam.status != previous_status:
        logger.info("Exam %s moved from %s to %s by %s", exam.pk, previous_status, exam.status, actor.pk)
    return exam


def delete_exam(*, actor: User, exam_id) -> None:
    require(actor, Action.DELETE_EXAM)
    with transaction.atomic():
        exam = _exam_for(actor, exam_id, lock=True)
        if exam.is_completed:
            raise Conflict("A completed exam cannot be deleted.")
        exam.delete()
    logger.info("Exam %s deleted by %s", exam_id, actor.pk)


# ---------------------------------------------------------------------------
# Enrollment
# ---------------------------------------------------------------------------


def enroll_student(*, actor: User, exam_id, student_id) -> ExamEnrollment:
    require(actor, Action.MANAGE_EXAM_ENROLLMENT)
    duplicate_message = "The student is already enrolled in this exam."

    # The exam row stays locked until the insert commits, so capacity and
    # uniqueness are checked against what the insert will actually see.
    with transaction.atomic():
        exam = _exam_for(actor, exam_id, lock=True)
        if not exam.is_open:
            raise Conflict("Students can only be enrolled in scheduled or in-progress exams.")
        if exam.capacity and exam.enrollments.count() >= exam.capacity:
            raise Conflict("The exam has reached its maximum capacity.")

        student = _active_member(actor, student_id, "Student")
        if student.belt != exam.belt_from:
            raise ValidationError(
                {"student_id": f"The student must hold the {exam.get_belt_from_display()} belt to enroll."}
            )
        if exam.enrollments.filter(user=student).exists():
            raise Conflict(duplicate_message)

        try:
            with transaction.atomic():
                enrollment = ExamEnrollment.objects.create(exam=exam, user=student)
        except IntegrityError as exc:
            raise Conflict(duplicate_message) from exc

    logger.info("Student %s enrolled in exam %s by %s", student.pk, exam.pk, actor.pk)
    return enrollment


def remove_student(*, actor: User, exam_id, student_id) -> None:
    require(actor, Action.MANAGE_EXAM_ENROLLMENT)
    with transaction.atomic():
        exam = _exam_for(actor, exam_id, lock=True)
        if exam.is_completed:
            raise Conflict("Students cannot be removed from a completed exam.")
        enrollment = exam.enrollments.filter(user_id=student_id).first()
        if enrollment is None:
            raise NotFound("Enrollment")
        if not enrollment.is_pending:
            raise Conflict("A student who has already been evaluated cannot be removed.")
        enrollment.delete()
    logger.info("Student %s removed from exam %s by %s", student_id, exam_id, actor.pk)


def list_with_requirements(*, actor: User, exam_id) -> List[EnrollmentRequirements]:
    """
    Enrollments of an exam with the attendance and video thresholds checked
    for each student. Informational only: nothing here blocks enrollment or
    evaluation.
    """
    require(actor, Action.VIEW_OTHERS)
    exam = _exam_for(actor, exam_id)
    rows = []
    for enrollment in exam.enrollments.select_related("user").order_by("registered_at", "id"):
        attendances = attendance_count(enrollment.user_id) if exam.min_attendances else 0
        videos = completed_video_count(enrollment.user_id) if exam.min_videos_completed else 0
        rows.append(
            EnrollmentRequirements(
                enrollment=enrollment,
                attendances=Requirement(current=attendances, required=exam.min_attendances),
                videos=Requirement(current=videos, required=exam.min_videos_completed),
            )
        )
    return rows


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def _check_evaluable(exam: Exam) -> None:
    if exam.status == Exam.STATUS_CANCELLED:
        raise Conflict("A cancelled exam cannot be evaluated.")
    if exam.status == Exam.STATUS_COMPLETED:
        raise Conflict("This exam has already been completed.")


def _is_int(value) -> bool:
    # bool is an int subclass; JSON true/false is never a valid id or score.
    return isinstance(value, int) and not isinstance(value, bool)


def _clean_batch(evaluations: Iterable[Union[Evaluation, Mapping]]) -> List[Evaluation]:
    batch = [item if isinstance(item, Evaluation) else Evaluation.from_mapping(item) for item in evaluations]
    if not batch:
        raise ValidationError({"evaluations": "At least one evaluation is required."})

    seen = set()
    for item in batch:
        if not _is_int(item.enrollment_id):
            raise ValidationError({"evaluations": f"Enrollment id {item.enrollment_id!r} must be an integer."})
        if not isinstance(item.result, str) or item.result not in ExamEnrollment.TERMINAL_RESULTS:
            raise ValidationError({"evaluations": f"Invalid result {item.result!r} for enrollment {item.enrollment_id}."})
        if item.score is not None and (not _is_int(item.score) or not 0 <= item.score <= 100):
            raise ValidationError({"evaluations": f"Score for enrollment {item.enrollment_id} must be between 0 and 100."})
        if item.enrollment_id in seen:
            raise ValidationError({"evaluations": f"Enrollment {item.enrollment_id} appears more than once."})
        seen.add(item.enrollment_id)
    return batch


def _default_notes(score: Optional[int]) -> str:
    return f"Approved in exam with score {score if score is not None else 'N/A'}"


def evaluate_exam(*, actor: User, exam_id, evaluations: Iterable[Union[Evaluation, Mapping]]) -> EvaluationSummary:
    """
    Record results for a batch of enrollments and promote every approved student.

    All checks run before the first write. The whole batch then commits in one
    transaction: enrollment results, promotion records, belt changes and the
    exam status either all land or none do. Enrollments that already carry a
    result are rejected rather than overwritten, so a student is never
    promoted twice by the same exam.

    After the batch the exam is ``completed`` when nothing is left pending and
    ``in_progress`` otherwise.
    """
    require(actor, Action.EVALUATE_EXAM)
    batch = _clean_batch(evaluations)

    with transaction.atomic():
        exam = _exam_for(actor, exam_id, lock=True)
        _check_evaluable(exam)

        ids = [item.enrollment_id for item in batch]
        enrollments = {
            enrollment.pk: enrollment
            for enrollment in exam.enrollments.select_for_update().select_related("user").filter(pk__in=ids)
        }
        missing = [str(pk) for pk in ids if pk not in enrollments]
        if missing:
            raise ValidationError(
                {"evaluations": f"Enrollments do not belong to this exam: {', '.join(missing)}."}
            )
        evaluated = [str(pk) for pk in ids if not enrollments[pk].is_pending]
        if evaluated:
            raise Conflict(f"Enrollments have already been evaluated: {', '.join(evaluated)}.")

        now = timezone.now()
        summary = EvaluationSummary()
        for item in batch:
            enrollment = enrollments[item.enrollment_id]
            enrollment.result = item.result
            enrollment.score = item.score
            enrollment.feedback = item.feedback or None
            enrollment.evaluated_at = now
            enrollment.save(update_fields=["result", "score", "feedback", "evaluated_at"])

            promoted = item.result == ExamEnrollment.RESULT_APPROVED
            if promoted:
                student = enrollment.user
                _record_promotion(
                    student=student,
                    to_rank=student.rank.promote_to(exam.belt_to),
                    promoted_by=actor,
                    exam=exam,
                    notes=item.feedback or _default_notes(item.score),
                    promoted_at=now,
                )
            summary.results.append(
                EvaluationOutcome(enrollment_id=enrollment.pk, result=item.result, promoted=promoted)
            )

        pending = exam.enrollments.filter(result=ExamEnrollment.RESULT_PENDING).count()
        exam.status = Exam.STATUS_COMPLETED if pending == 0 else Exam.STATUS_IN_PROGRESS
        exam.save(update_fields=["status", "updated_at"])
        summary.exam_status = exam.status

    logger.info(
        "Exam %s evaluated by %s: %s approved, %s failed, %s no-show; status %s",
        exam.pk,
        actor.pk,
        summary.approved,
        summary.failed,
        summary.no_show,
        exam.status,
    )
    return summary


# ---------------------------------------------------------------------------
# Promotion ledger
# ---------------------------------------------------------------------------


def _record_promotion(
    *,
    student: User,
    to_rank: Rank,
    promoted_by: User,
    exam: Optional[Exam] = None,
    notes: str = "",
    promoted_at=None,
) -> Promotion:
    """Append a ledger entry and move the student to ``to_rank``. Callers hold a transaction."""
    promotion = Promotion.objects.create(
        student=student,
        from_belt=student.belt,
        from_stripe=student.stripe,
        to_belt=to_rank.belt.value,
        to_stripe=to_rank.stripe,
        promoted_at=promoted_at or timezone.now(),
        promoted_by=promoted_by,
        exam=exam,
        notes=notes or "",
    )
    student.apply_rank(to_rank)
    logger.info(
        "Student %s promoted %s/%s -> %s/%s (promotion %s)",
        student.pk,
        promotion.from_belt,
        promotion.from_stripe,
        promotion.to_belt,
        promotion.to_stripe,
        promotion.pk,
    )
    return promotion


def promote_student(
    *,
    actor: User,
    student_id,
    to_belt: str,
    to_stripe: int = 0,
    notes: str = "",
    exam_id=None,
) -> Promotion:
    require(actor, Action.CREATE_PROMOTION)
    try:
        to_rank = Rank(belt=to_belt, stripe=to_stripe)
    except ValueError as exc:
        raise ValidationError({"to_belt": str(exc)})

    with transaction.atomic():
        student = _active_member(actor, student_id, "Student", lock=True)
        exam = None
        if exam_id:
            exam = Exam.objects.filter(pk=exam_id, academy_id=actor.academy_id).first()
            if exam is None:
                raise NotFound("Exam")
        return _record_promotion(student=student, to_rank=to_rank, promoted_by=actor, exam=exam, notes=notes)


def reverse_promotion(*, actor: User, promotion_id) -> User:
    """Undo a promotion: the student gets the ``from`` rank back and the entry is removed."""
    require(actor, Action.REVERSE_PROMOTION)
    with transaction.atomic():
        promotion = Promotion.objects.select_for_update().select_related("student").filter(pk=promotion_id).first()
        if promotion is None:
            raise NotFound("Promotion")
        require_same_academy(actor, promotion.student.academy_id, "promotion")
        student = promotion.student
        student.apply_rank(Rank(belt=promotion.from_belt, stripe=promotion.from_stripe))
        promotion.delete()

    logger.info(
        "Promotion %s reversed by %s; student %s back to %s/%s",
        promotion_id,
        actor.pk,
        student.pk,
        student.belt,
        student.stripe,
    )
    return student


def list_promotions(*, actor: User, student_id=None):
    promotions = Promotion.objects.select_related("student", "promoted_by", "exam")
    if actor.role == User.Role.STUDENT:
        promotions = promotions.filter(student=actor)
    elif actor.academy_id is None:
        return promotions.none()
    else:
        promotions = promotions.filter(student__academy_id=actor.academy_id)
        if student_id:
            promotions = promotions.filter(student_id=student_id)
    return promotions.order_by("-promoted_at", "-id")


def get_promotion(*, actor: User, promotion_id) -> Promotion:
    promotion = Promotion.objects.select_related("student", "promoted_by", "exam").filter(pk=promotion_id).first()
    if promotion is None:
        raise NotFound("Promotion")
    if actor.role == User.Role.STUDENT:
        if promotion.student_id != actor.pk:
            raise PermissionDenied("You do not have access to this promotion.")
    else:
        require_same_academy(actor, promotion.student.academy_id, "promotion")
    return promotion
