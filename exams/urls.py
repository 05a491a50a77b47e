from django.urls import path

from . import views

app_name = "exams"

urlpatterns = [
    path("exams/", views.exam_list, name="exam_list"),
    path("exams/<int:exam_id>/", views.exam_detail, name="exam_detail"),
    path("exams/<int:exam_id>/students/", views.exam_students, name="exam_students"),
    path("exams/<int:exam_id>/students/<int:student_id>/", views.exam_student_detail, name="exam_student_detail"),
    path("exams/<int:exam_id>/evaluations/", views.exam_evaluations, name="exam_evaluations"),
    path("promotions/", views.promotion_list, name="promotion_list"),
    path("promotions/<int:promotion_id>/", views.promotion_detail, name="promotion_detail"),
]
