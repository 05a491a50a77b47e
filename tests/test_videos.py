import pytest
from django.core.exceptions import PermissionDenied, ValidationError

from accounts.belts import Belt
from accounts.exceptions import NotFound
from videos import services
from videos.models import Video, VideoProgress

pytestmark = pytest.mark.django_db


@pytest.fixture
def make_video(academy):
    def _make(**overrides):
        values = {
            "academy": academy,
            "title": "Closed guard basics",
            "category": "guard",
            "min_belt": Belt.WHITE,
            "is_published": True,
        }
        values.update(overrides)
        video = Video(**values)
        video.save()
        return video

    return _make


def test_accessible_videos_respect_belt_range(student, make_video, make_user):
    basics = make_video()
    make_video(title="Berimbolo", min_belt=Belt.PURPLE)
    make_video(title="Draft", is_published=False)
    make_video(title="Fundamentals only", max_belt=Belt.WHITE)

    titles = {video.title for video in services.accessible_videos(actor=student)}
    assert titles == {basics.title, "Fundamentals only"}

    purple = make_user(belt=Belt.PURPLE)
    titles = {video.title for video in services.accessible_videos(actor=purple)}
    assert titles == {"Berimbolo", basics.title}


def test_progress_completion_is_sticky(student, make_video):
    video = make_video()
    progress = services.record_progress(actor=student, video_id=video.pk, percentage=40)
    assert (progress.percentage, progress.completed) == (40, False)

    services.record_progress(actor=student, video_id=video.pk, percentage=100)
    progress = services.record_progress(actor=student, video_id=video.pk, percentage=10)

    assert (progress.percentage, progress.completed) == (10, True)
    assert VideoProgress.objects.filter(user=student).count() == 1
    assert services.completed_video_count(student.pk) == 1


@pytest.mark.parametrize("percentage", [-1, 101, "50", 12.5])
def test_progress_must_be_a_percentage(student, make_video, percentage):
    video = make_video()
    with pytest.raises(ValidationError):
        services.record_progress(actor=student, video_id=video.pk, percentage=percentage)


def test_video_access_rules(student, make_video, other_academy):
    locked = make_video(title="Leg locks", min_belt=Belt.BROWN)
    draft = make_video(title="Draft", is_published=False)
    foreign = make_video(title="Elsewhere", academy=other_academy)

    for video in (locked, draft, foreign):
        with pytest.raises(PermissionDenied):
            services.record_progress(actor=student, video_id=video.pk, percentage=50)
    with pytest.raises(NotFound):
        services.record_progress(actor=student, video_id=999999, percentage=50)


def test_register_view(student, make_video):
    video = make_video()
    assert services.register_view(actor=student, video_id=video.pk) == 1
    assert services.register_view(actor=student, video_id=video.pk) == 2


def test_max_belt_cannot_be_below_min(make_video):
    with pytest.raises(ValidationError):
        make_video(min_belt=Belt.BLUE, max_belt=Belt.WHITE)
