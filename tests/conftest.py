"""
Shared fixtures: two academies, one member per role, and factories for
students and exams. The cache is cleared around every test so rate-limit
counters never leak between tests.
"""

from __future__ import annotations

import datetime
import itertools

import pytest
from django.core.cache import cache

from accounts.belts import Belt
from accounts.models import Academy, User
from exams.models import Exam

_usernames = itertools.count(1)


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def academy(db):
    return Academy.objects.create(name="Gracie North", slug="gracie-north")


@pytest.fixture
def other_academy(db):
    return Academy.objects.create(name="Alliance South", slug="alliance-south")


@pytest.fixture
def make_user(db, academy):
    def _make(role=User.Role.STUDENT, belt=Belt.WHITE, stripe=0, academy=academy, **extra):
        username = extra.pop("username", f"member{next(_usernames)}")
        return User.objects.create_user(
            username=username,
            password="s3cret-pass",
            role=role,
            belt=belt,
            stripe=stripe,
            academy=academy,
            **extra,
        )

    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user(role=User.Role.ADMIN, belt=Belt.BLACK, username="head-coach")


@pytest.fixture
def instructor(make_user):
    return make_user(role=User.Role.INSTRUCTOR, belt=Belt.BROWN, username="coach")


@pytest.fixture
def student(make_user):
    return make_user(username="white-belt")


@pytest.fixture
def outsider_admin(make_user, other_academy):
    return make_user(role=User.Role.ADMIN, belt=Belt.BLACK, academy=other_academy, username="rival-coach")


@pytest.fixture
def make_exam(db, academy, instructor):
    def _make(**overrides):
        values = {
            "academy": academy,
            "title": "White to Blue",
            "date": datetime.date(2024, 6, 1),
            "belt_from": Belt.WHITE,
            "belt_to": Belt.BLUE,
            "created_by": instructor,
        }
        values.update(overrides)
        exam = Exam(**values)
        exam.save()
        return exam

    return _make


@pytest.fixture
def exam(make_exam):
    return make_exam()


@pytest.fixture
def api(client):
    """Django test client logged in as whoever the test passes in."""

    def _login(user):
        client.force_login(user)
        return client

    return _login
