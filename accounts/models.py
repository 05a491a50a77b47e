from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models

from .belts import Belt, Rank, Stripe


class Academy(models.Model):
    name = models.CharField(max_length=128)
    slug = models.SlugField(max_length=64, unique=True)
    timezone = models.CharField(max_length=64, default="UTC")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "academies"

    def __str__(self) -> str:
        return self.name


class User(AbstractUser):
    class Role(models.TextChoices):
        STUDENT = "student", "Student"
        INSTRUCTOR = "instructor", "Instructor"
        ADMIN = "admin", "Admin"

    role = models.CharField(max_length=16, choices=Role.choices, default=Role.STUDENT)
    belt = models.CharField(max_length=16, choices=Belt.choices, default=Belt.WHITE)
    stripe = models.PositiveSmallIntegerField(choices=Stripe.choices, default=Stripe.ZERO)
    # Platform superusers may exist without a tenant; they get no academy access.
    academy = models.ForeignKey(
        Academy, on_delete=models.PROTECT, related_name="members", null=True, blank=True
    )
    phone = models.CharField(max_length=32, blank=True)

    class Meta:
        ordering = ["username"]

    def __str__(self) -> str:
        return self.get_full_name() or self.username

    @property
    def rank(self) -> Rank:
        return Rank(belt=self.belt, stripe=self.stripe)

    def apply_rank(self, rank: Rank) -> None:
        """Persist a new belt/stripe pair; the only place rank fields are written."""
        self.belt = rank.belt.value
        self.stripe = rank.stripe
        self.save(update_fields=["belt", "stripe"])

    @property
    def is_staff_member(self) -> bool:
        return self.role in (self.Role.INSTRUCTOR, self.Role.ADMIN)
