from django.http import JsonResponse

from dojo.api import api_view, paginate, required
from . import services
from .models import Video


def serialize_video(video: Video) -> dict:
    return {
        "id": video.pk,
        "title": video.title,
        "description": video.description,
        "category": video.category,
        "min_belt": video.min_belt,
        "max_belt": video.max_belt,
        "view_count": video.view_count,
    }


@api_view(["GET"])
def video_list(request):
    return paginate(request, services.accessible_videos(actor=request.user), serialize_video)


@api_view(["POST"])
def video_view(request, video_id):
    view_count = services.register_view(actor=request.user, video_id=video_id)
    return JsonResponse({"id": video_id, "view_count": view_count})


@api_view(["POST"])
def video_progress(request, video_id):
    progress = services.record_progress(
        actor=request.user,
        video_id=video_id,
        percentage=required(request.data, "percentage"),
    )
    return JsonResponse(
        {
            "video_id": progress.video_id,
            "percentage": progress.percentage,
            "completed": progress.completed,
            "updated_at": progress.updated_at.isoformat(),
        }
    )
