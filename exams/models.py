from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from accounts.belts import Belt, Stripe, compare
from accounts.models import Academy


class Exam(models.Model):
    STATUS_SCHEDULED = "scheduled"
    STATUS_IN_PROGRESS = "in_progress"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"
    STATUS_CHOICES = [
        (STATUS_SCHEDULED, "Scheduled"),
        (STATUS_IN_PROGRESS, "In progress"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]
    OPEN_STATUSES = (STATUS_SCHEDULED, STATUS_IN_PROGRESS)
    # Completed is reached only by evaluating the last pending enrollment.
    MANUAL_TRANSITIONS = {
        STATUS_SCHEDULED: {STATUS_IN_PROGRESS, STATUS_CANCELLED},
        STATUS_IN_PROGRESS: {STATUS_SCHEDULED, STATUS_CANCELLED},
        STATUS_CANCELLED: {STATUS_SCHEDULED},
        STATUS_COMPLETED: set(),
    }

    academy = models.ForeignKey(Academy, on_delete=models.CASCADE, related_name="exams")
    title = models.CharField(max_length=128)
    description = models.TextField(blank=True)
    date = models.DateField()
    location = models.CharField(max_length=255, blank=True)
    belt_from = models.CharField(max_length=16, choices=Belt.choices)
    belt_to = models.CharField(max_length=16, choices=Belt.choices)
    capacity = models.PositiveIntegerField(null=True, blank=True)
    exam_fee = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    min_attendances = models.PositiveIntegerField(null=True, blank=True)
    min_videos_completed = models.PositiveIntegerField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SCHEDULED)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="created_exams"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date", "id"]
        indexes = [models.Index(fields=["academy", "status"], name="exam_academy_status_idx")]

    def __str__(self) -> str:
        return f"{self.title} ({self.get_belt_from_display()} -> {self.get_belt_to_display()})"

    @property
    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES

    @property
    def is_completed(self) -> bool:
        return self.status == self.STATUS_COMPLETED

    def can_transition_to(self, status: str) -> bool:
        return status == self.status or status in self.MANUAL_TRANSITIONS[self.status]

    def clean(self):
        if self.belt_from in Belt.values and self.belt_to in Belt.values and compare(self.belt_to, self.belt_from) <= 0:
            raise ValidationError({"belt_to": "Target belt must be higher than the origin belt."})
        if self.capacity == 0:
            raise ValidationError({"capacity": "Capacity must be a positive number of seats."})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class ExamEnrollment(models.Model):
    RESULT_PENDING = "pending"
    RESULT_APPROVED = "approved"
    RESULT_FAILED = "failed"
    RESULT_NO_SHOW = "no_show"
    RESULT_CHOICES = [
        (RESULT_PENDING, "Pending"),
        (RESULT_APPROVED, "Approved"),
        (RESULT_FAILED, "Failed"),
        (RESULT_NO_SHOW, "No show"),
    ]
    TERMINAL_RESULTS = (RESULT_APPROVED, RESULT_FAILED, RESULT_NO_SHOW)

    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name="enrollments")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="exam_enrollments")
    result = models.CharField(max_length=16, choices=RESULT_CHOICES, default=RESULT_PENDING)
    score = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    feedback = models.TextField(blank=True, null=True)
    registered_at = models.DateTimeField(auto_now_add=True)
    evaluated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["registered_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["exam", "user"], name="uniq_exam_enrollment_user"),
        ]

    def __str__(self) -> str:
        return f"{self.user} @ {self.exam} = {self.result}"

    @property
    def is_pending(self) -> bool:
        return self.result == self.RESULT_PENDING


class Promotion(models.Model):
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="promotions")
    from_belt = models.CharField(max_length=16, choices=Belt.choices)
    from_stripe = models.PositiveSmallIntegerField(choices=Stripe.choices)
    to_belt = models.CharField(max_length=16, choices=Belt.choices)
    to_stripe = models.PositiveSmallIntegerField(choices=Stripe.choices)
    promoted_at = models.DateTimeField()
    promoted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="promotions_given"
    )
    exam = models.ForeignKey(Exam, on_delete=models.SET_NULL, null=True, blank=True, related_name="promotions")
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["-promoted_at", "-id"]

    def __str__(self) -> str:
        return (
            f"{self.student}: {self.get_from_belt_display()}/{self.from_stripe}"
            f" -> {self.get_to_belt_display()}/{self.to_stripe}"
        )
