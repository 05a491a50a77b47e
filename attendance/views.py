from django.http import HttpResponse, JsonResponse

from dojo.api import api_view, date_param, int_param, paginate, required
from . import services
from .models import AttendanceRecord


def serialize_record(record: AttendanceRecord) -> dict:
    return {
        "id": record.pk,
        "user_id": record.user_id,
        "user_name": str(record.user),
        "date": record.date.isoformat(),
        "class_type": record.class_type,
        "schedule_id": record.schedule_id,
        "notes": record.notes,
        "registered_by": record.registered_by_id,
        "created_at": record.created_at.isoformat(),
    }


@api_view(["GET", "POST"])
def attendance_list(request):
    if request.method == "POST":
        data = request.data
        on_date = date_param(required(data, "date"), "date")
        class_type = required(data, "class_type")
        schedule_id = int_param(data.get("schedule_id"), "schedule_id")

        if "user_ids" in data:
            user_ids = data["user_ids"]
            if not isinstance(user_ids, list):
                user_ids = []
            result = services.record_bulk_attendance(
                actor=request.user,
                user_ids=[int_param(value, "user_ids") for value in user_ids],
                on_date=on_date,
                class_type=class_type,
                schedule_id=schedule_id,
            )
            return JsonResponse(
                {"created": result.created, "skipped": result.skipped, "invalid": result.invalid},
                status=201,
            )

        record = services.record_attendance(
            actor=request.user,
            user_id=int_param(required(data, "user_id"), "user_id"),
            on_date=on_date,
            class_type=class_type,
            schedule_id=schedule_id,
            notes=data.get("notes") or "",
        )
        return JsonResponse(serialize_record(record), status=201)

    records = services.list_attendance(
        actor=request.user,
        user_id=int_param(request.GET.get("user_id"), "user_id"),
        month=request.GET.get("month"),
        class_type=request.GET.get("class_type"),
    )
    return paginate(request, records, serialize_record)


@api_view(["DELETE"])
def attendance_detail(request, record_id):
    services.delete_attendance(actor=request.user, record_id=record_id)
    return HttpResponse(status=204)


@api_view(["GET"])
def attendance_stats(request):
    stats = services.attendance_stats(
        actor=request.user,
        user_id=int_param(request.GET.get("user_id"), "user_id"),
        as_of=date_param(request.GET.get("as_of"), "as_of"),
    )
    return JsonResponse(stats.as_dict())
