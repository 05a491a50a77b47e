import datetime
import json

import pytest

from accounts.belts import Belt
from attendance.models import AttendanceRecord, ClassType
from exams import services
from exams.models import Exam, Promotion

pytestmark = pytest.mark.django_db


def post(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


def patch(client, url, payload):
    return client.patch(url, data=json.dumps(payload), content_type="application/json")


def test_health_is_public(client):
    response = client.get("/api/v1/health/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_anonymous_requests_get_401(client, exam):
    response = client.get("/api/v1/exams/")
    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "UNAUTHORIZED"
    assert "timestamp" in error


def test_unknown_route_returns_json_404(api, student):
    response = api(student).get("/api/v1/nowhere/")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_wrong_method(api, student, exam):
    response = api(student).put(f"/api/v1/exams/{exam.pk}/")
    assert response.status_code == 405


def test_malformed_json_is_400(api, instructor):
    response = api(instructor).post("/api/v1/exams/", data="{not json", content_type="application/json")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "BAD_REQUEST"


def test_create_exam(api, instructor):
    response = post(
        api(instructor),
        "/api/v1/exams/",
        {
            "title": "Spring grading",
            "date": "2024-04-20",
            "belt_from": "white",
            "belt_to": "blue",
            "capacity": 12,
            "exam_fee": "45.00",
        },
    )
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == Exam.STATUS_SCHEDULED
    assert body["exam_fee"] == "45.00"
    assert body["enrolled_count"] == 0


def test_create_exam_validation_is_422(api, instructor):
    response = post(
        api(instructor),
        "/api/v1/exams/",
        {"title": "Backwards", "date": "2024-04-20", "belt_from": "blue", "belt_to": "white"},
    )
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "belt_to" in error["details"]


def test_missing_field_is_422(api, instructor):
    response = post(api(instructor), "/api/v1/exams/", {"title": "No date"})
    assert response.status_code == 422
    assert "date" in response.json()["error"]["details"]


def test_student_is_forbidden(api, student):
    response = post(
        api(student),
        "/api/v1/exams/",
        {"title": "Mine", "date": "2024-04-20", "belt_from": "white", "belt_to": "blue"},
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_cross_tenant_read_is_forbidden(api, outsider_admin, exam):
    response = api(outsider_admin).get(f"/api/v1/exams/{exam.pk}/")
    assert response.status_code == 403


def test_missing_exam_is_404(api, instructor):
    response = api(instructor).get("/api/v1/exams/999999/")
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Exam not found."


def test_update_and_delete_exam(api, instructor, admin_user, exam):
    response = patch(api(instructor), f"/api/v1/exams/{exam.pk}/", {"location": "Mat 2", "date": "2024-07-01"})
    assert response.status_code == 200
    assert response.json()["location"] == "Mat 2"
    assert response.json()["date"] == "2024-07-01"

    response = patch(api(instructor), f"/api/v1/exams/{exam.pk}/", {"status": "completed"})
    assert response.status_code == 409

    assert api(instructor).delete(f"/api/v1/exams/{exam.pk}/").status_code == 403
    assert api(admin_user).delete(f"/api/v1/exams/{exam.pk}/").status_code == 204


def test_enrollment_flow(api, instructor, exam, student):
    client = api(instructor)
    url = f"/api/v1/exams/{exam.pk}/students/"

    response = post(client, url, {"student_id": student.pk})
    assert response.status_code == 201
    enrollment_id = response.json()["id"]

    assert post(client, url, {"student_id": student.pk}).status_code == 409

    listing = client.get(url).json()["data"]
    assert [row["id"] for row in listing] == [enrollment_id]
    assert listing[0]["requirements"]["attendances"]["met"] is True

    response = post(
        client,
        f"/api/v1/exams/{exam.pk}/evaluations/",
        {"evaluations": [{"enrollment_id": enrollment_id, "result": "approved", "score": 91}]},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["exam_status"] == Exam.STATUS_COMPLETED
    assert body["results"] == [{"enrollment_id": enrollment_id, "result": "approved", "promoted": True}]

    student.refresh_from_db()
    assert student.belt == Belt.BLUE
    assert client.delete(f"/api/v1/exams/{exam.pk}/students/{student.pk}/").status_code == 409


def test_evaluation_requires_a_list(api, instructor, exam):
    response = post(api(instructor), f"/api/v1/exams/{exam.pk}/evaluations/", {"evaluations": "all passed"})
    assert response.status_code == 422


def test_evaluation_with_list_id_is_422(api, instructor, exam):
    payload = {"evaluations": [{"enrollment_id": [1], "result": "approved", "score": True}]}
    response = post(api(instructor), f"/api/v1/exams/{exam.pk}/evaluations/", payload)
    assert response.status_code == 422


def test_promotion_endpoints(api, instructor, admin_user, student):
    response = post(api(instructor), "/api/v1/promotions/", {"student_id": student.pk, "to_belt": "blue"})
    assert response.status_code == 201
    promotion_id = response.json()["id"]

    response = api(student).get(f"/api/v1/promotions/{promotion_id}/")
    assert response.status_code == 200
    assert response.json()["to_belt"] == "blue"

    response = api(admin_user).delete(f"/api/v1/promotions/{promotion_id}/")
    assert response.status_code == 200
    assert response.json()["student"]["belt"] == "white"
    assert not Promotion.objects.exists()


def test_pagination_envelope(api, instructor, make_exam):
    for day in range(1, 6):
        make_exam(title=f"Exam {day}", date=datetime.date(2024, 6, day))
    client = api(instructor)

    body = client.get("/api/v1/exams/?limit=2&page=2").json()
    assert [row["title"] for row in body["data"]] == ["Exam 3", "Exam 4"]
    assert body["meta"] == {
        "page": 2,
        "limit": 2,
        "total": 5,
        "totalPages": 3,
        "hasNext": True,
        "hasPrev": True,
    }

    body = client.get("/api/v1/exams/?page=9").json()
    assert body["data"] == []
    assert body["meta"]["hasNext"] is False


def test_page_size_is_capped(api, instructor, settings, make_exam):
    settings.API_MAX_PAGE_SIZE = 3
    make_exam()
    body = api(instructor).get("/api/v1/exams/?limit=500").json()
    assert body["meta"]["limit"] == 3


def test_bad_page_number(api, instructor):
    assert api(instructor).get("/api/v1/exams/?page=abc").status_code == 422


def test_attendance_endpoints(api, instructor, student, make_user):
    client = api(instructor)
    response = post(client, "/api/v1/attendance/", {"user_id": student.pk, "date": "2024-01-10", "class_type": "GI"})
    assert response.status_code == 201
    record_id = response.json()["id"]

    response = post(client, "/api/v1/attendance/", {"user_id": student.pk, "date": "2024-01-10", "class_type": "GI"})
    assert response.status_code == 409

    classmate = make_user()
    response = post(
        client,
        "/api/v1/attendance/",
        {"user_ids": [student.pk, classmate.pk], "date": "2024-01-10", "class_type": "GI"},
    )
    assert response.status_code == 201
    assert response.json() == {"created": 1, "skipped": 1, "invalid": 0}

    body = client.get("/api/v1/attendance/?month=2024-01").json()
    assert body["meta"]["total"] == 2

    stats = api(student).get("/api/v1/attendance/stats/?as_of=2024-01-10").json()
    assert stats["total_attendances"] == 1
    assert stats["current_streak"] == 1
    assert stats["favorite_class_type"] == "GI"

    assert api(instructor).delete(f"/api/v1/attendance/{record_id}/").status_code == 204
    assert not AttendanceRecord.objects.filter(pk=record_id).exists()


def test_students_see_only_own_attendance(api, student, make_user):
    classmate = make_user()
    AttendanceRecord.objects.create(user=student, date=datetime.date(2024, 1, 1), class_type=ClassType.GI)
    AttendanceRecord.objects.create(user=classmate, date=datetime.date(2024, 1, 1), class_type=ClassType.GI)

    body = api(student).get(f"/api/v1/attendance/?user_id={classmate.pk}").json()
    assert [row["user_id"] for row in body["data"]] == [student.pk]
    assert api(student).get(f"/api/v1/attendance/stats/?user_id={classmate.pk}").status_code == 403


def test_unexpected_errors_become_500(api, instructor, exam, monkeypatch):
    def explode(**kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(services, "get_exam", explode)
    response = api(instructor).get(f"/api/v1/exams/{exam.pk}/")
    assert response.status_code == 500
    assert response.json()["error"] == {
        "code": "INTERNAL_ERROR",
        "message": "An unexpected error occurred.",
        "timestamp": response.json()["error"]["timestamp"],
    }
