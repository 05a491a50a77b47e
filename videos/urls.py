from django.urls import path

from . import views

app_name = "videos"

urlpatterns = [
    path("videos/", views.video_list, name="video_list"),
    path("videos/<int:video_id>/views/", views.video_view, name="video_view"),
    path("videos/<int:video_id>/progress/", views.video_progress, name="video_progress"),
]
