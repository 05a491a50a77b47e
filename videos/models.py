from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator
from django.db import models

from accounts.belts import Belt, compare
from accounts.models import Academy


class Video(models.Model):
    CATEGORY_CHOICES = [
        ("guard", "Guard"),
        ("guard_pass", "Guard pass"),
        ("mount", "Mount"),
        ("back", "Back"),
        ("side_control", "Side control"),
        ("submission", "Submission"),
        ("defense", "Defense"),
        ("sweep", "Sweep"),
        ("takedown", "Takedown"),
        ("escape", "Escape"),
        ("drill", "Drill"),
        ("competition", "Competition"),
    ]

    academy = models.ForeignKey(Academy, on_delete=models.CASCADE, related_name="videos")
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=32, choices=CATEGORY_CHOICES)
    min_belt = models.CharField(max_length=16, choices=Belt.choices, default=Belt.WHITE)
    max_belt = models.CharField(max_length=16, choices=Belt.choices, null=True, blank=True)
    is_published = models.BooleanField(default=False)
    view_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["title"]

    def __str__(self) -> str:
        return self.title

    def clean(self):
        if self.max_belt in Belt.values and self.min_belt in Belt.values and compare(self.max_belt, self.min_belt) < 0:
            raise ValidationError({"max_belt": "Maximum belt cannot be below the minimum belt."})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class VideoProgress(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="video_progress")
    video = models.ForeignKey(Video, on_delete=models.CASCADE, related_name="progress")
    percentage = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(100)])
    completed = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(fields=["user", "video"], name="uniq_video_progress_user"),
        ]

    def __str__(self) -> str:
        return f"{self.user} {self.video} {self.percentage}%"
