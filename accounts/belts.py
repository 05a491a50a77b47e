from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.db import models


class Belt(models.TextChoices):
    WHITE = "white", "White"
    BLUE = "blue", "Blue"
    PURPLE = "purple", "Purple"
    BROWN = "brown", "Brown"
    BLACK = "black", "Black"
    CORAL = "coral", "Coral"
    RED = "red", "Red"


class Stripe(models.IntegerChoices):
    ZERO = 0, "0 stripes"
    ONE = 1, "1 stripe"
    TWO = 2, "2 stripes"
    THREE = 3, "3 stripes"
    FOUR = 4, "4 stripes"


BELT_ORDER = (
    Belt.WHITE,
    Belt.BLUE,
    Belt.PURPLE,
    Belt.BROWN,
    Belt.BLACK,
    Belt.CORAL,
    Belt.RED,
)

BELT_COLORS = {
    Belt.WHITE: "#FFFFFF",
    Belt.BLUE: "#2563EB",
    Belt.PURPLE: "#7C3AED",
    Belt.BROWN: "#92400E",
    Belt.BLACK: "#0A0A0A",
    Belt.CORAL: "#F97316",
    Belt.RED: "#DC2626",
}


def rank_index(belt) -> int:
    # Belt(...) raises ValueError for anything outside the canonical sequence.
    return BELT_ORDER.index(Belt(belt))


def compare(first, second) -> int:
    return rank_index(first) - rank_index(second)


def is_at_least(belt, threshold) -> bool:
    return rank_index(belt) >= rank_index(threshold)


def is_within_range(belt, minimum, maximum=None) -> bool:
    """
    True when ``belt`` sits inside ``[minimum, maximum]``.
    A missing ``maximum`` leaves the range open at the top.
    """
    index = rank_index(belt)
    if index < rank_index(minimum):
        return False
    if maximum is None:
        return True
    return index <= rank_index(maximum)


@dataclass(frozen=True)
class Rank:
    belt: str
    stripe: int = Stripe.ZERO

    def __post_init__(self):
        object.__setattr__(self, "belt", Belt(self.belt))
        if self.stripe not in Stripe.values:
            raise ValueError(f"Stripe must be between 0 and 4, got {self.stripe!r}.")
        object.__setattr__(self, "stripe", int(self.stripe))

    def __str__(self) -> str:
        return f"{self.belt.label} / {self.stripe}"

    def promote_to(self, belt) -> "Rank":
        return Rank(belt=belt, stripe=Stripe.ZERO)

    def with_stripe(self, stripe: int) -> "Rank":
        return Rank(belt=self.belt, stripe=stripe)

    def outranks(self, other: "Rank") -> bool:
        diff = compare(self.belt, other.belt)
        if diff:
            return diff > 0
        return self.stripe > other.stripe


def parse_belt(value: Optional[str]) -> Optional[Belt]:
    if value in (None, ""):
        return None
    return Belt(value)
