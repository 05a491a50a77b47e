"""
URL configuration for the dojo project.
"""
from django.contrib import admin
from django.db import connection
from django.http import JsonResponse
from django.urls import include, path
from django.utils import timezone

from .api import api_view, error_response


@api_view(["GET"], public=True)
def health(request):
    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")
    return JsonResponse({"status": "ok", "timestamp": timezone.now().isoformat()})


def handle_404(request, exception=None):
    return error_response(404, "NOT_FOUND", f"Route {request.path} not found.")


api_patterns = [
    path("health/", health, name="health"),
    path("", include("accounts.urls")),
    path("", include("exams.urls")),
    path("", include("attendance.urls")),
    path("", include("videos.urls")),
]

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/v1/", include(api_patterns)),
]

handler404 = "dojo.urls.handle_404"
