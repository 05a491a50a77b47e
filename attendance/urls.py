from django.urls import path

from . import views

app_name = "attendance"

urlpatterns = [
    path("attendance/", views.attendance_list, name="attendance_list"),
    path("attendance/stats/", views.attendance_stats, name="attendance_stats"),
    path("attendance/<int:record_id>/", views.attendance_detail, name="attendance_detail"),
]
