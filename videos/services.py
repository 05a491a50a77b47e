from __future__ import annotations

import logging
from typing import List

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import F

from accounts.belts import is_within_range
from accounts.exceptions import NotFound
from accounts.models import User
from accounts.policy import require_same_academy
from .models import Video, VideoProgress

logger = logging.getLogger(__name__)


def completed_video_count(user_id) -> int:
    return VideoProgress.objects.filter(user_id=user_id, completed=True).count()


def can_watch(user: User, video: Video) -> bool:
    return is_within_range(user.belt, video.min_belt, video.max_belt)


def accessible_videos(*, actor: User) -> List[Video]:
    if actor.academy_id is None:
        return []
    videos = Video.objects.filter(academy_id=actor.academy_id, is_published=True)
    return [video for video in videos if can_watch(actor, video)]


def _watchable_video(actor: User, video_id) -> Video:
    video = Video.objects.filter(pk=video_id).first()
    if video is None:
        raise NotFound("Video")
    require_same_academy(actor, video.academy_id, "video")
    if not video.is_published:
        raise PermissionDenied("Video is not available.")
    if not can_watch(actor, video):
        raise PermissionDenied("Your belt does not give access to this video.")
    return video


def register_view(*, actor: User, video_id) -> int:
    video = _watchable_video(actor, video_id)
    Video.objects.filter(pk=video.pk).update(view_count=F("view_count") + 1)
    video.refresh_from_db(fields=["view_count"])
    return video.view_count


def record_progress(*, actor: User, video_id, percentage: int) -> VideoProgress:
    if not isinstance(percentage, int) or not 0 <= percentage <= 100:
        raise ValidationError({"percentage": "Percentage must be an integer between 0 and 100."})
    video = _watchable_video(actor, video_id)

    with transaction.atomic():
        progress, _ = VideoProgress.objects.select_for_update().get_or_create(user=actor, video=video)
        progress.percentage = percentage
        # Completion is sticky: rewatching from the start keeps it.
        if percentage >= 100 and not progress.completed:
            progress.completed = True
            logger.info("User %s completed video %s", actor.pk, video.pk)
        progress.save(update_fields=["percentage", "completed", "updated_at"])
    return progress
