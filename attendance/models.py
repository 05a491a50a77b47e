from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from accounts.models import Academy


class ClassType(models.TextChoices):
    GI = "GI", "Gi"
    NOGI = "NOGI", "No-Gi"
    COMPETITION = "COMPETITION", "Competition"
    KIDS = "KIDS", "Kids"
    FUNDAMENTALS = "FUNDAMENTALS", "Fundamentals"
    ADVANCED = "ADVANCED", "Advanced"


class ClassSchedule(models.Model):
    DAY_CHOICES = [
        (0, "Sunday"),
        (1, "Monday"),
        (2, "Tuesday"),
        (3, "Wednesday"),
        (4, "Thursday"),
        (5, "Friday"),
        (6, "Saturday"),
    ]

    academy = models.ForeignKey(Academy, on_delete=models.CASCADE, related_name="class_schedules")
    name = models.CharField(max_length=128)
    class_type = models.CharField(max_length=16, choices=ClassType.choices)
    day_of_week = models.PositiveSmallIntegerField(choices=DAY_CHOICES)
    start_time = models.TimeField()
    end_time = models.TimeField()
    capacity = models.PositiveIntegerField(null=True, blank=True)
    active = models.BooleanField(default=True)

    class Meta:
        ordering = ["day_of_week", "start_time"]

    def __str__(self) -> str:
        return f"{self.name} ({self.get_day_of_week_display()} {self.start_time:%H:%M})"

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError("Class must end after it starts.")

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class AttendanceRecord(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="attendance_records")
    date = models.DateField()
    class_type = models.CharField(max_length=16, choices=ClassType.choices)
    schedule = models.ForeignKey(
        ClassSchedule, on_delete=models.SET_NULL, null=True, blank=True, related_name="attendance_records"
    )
    notes = models.TextField(blank=True)
    registered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="registered_attendance",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-date", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["user", "date", "class_type"], name="uniq_attendance_user_day_class"),
        ]
        indexes = [models.Index(fields=["user", "date"], name="attendance_user_date_idx")]

    def __str__(self) -> str:
        return f"{self.user} {self.date:%Y-%m-%d} {self.class_type}"
