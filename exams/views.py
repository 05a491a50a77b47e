from django.core.exceptions import ValidationError
from django.http import HttpResponse, JsonResponse

from dojo.api import api_view, date_param, int_param, paginate, required
from . import services
from .models import Exam, ExamEnrollment, Promotion


def _member(user):
    if user is None:
        return None
    return {"id": user.pk, "name": str(user), "belt": user.belt, "stripe": user.stripe}


def serialize_exam(exam: Exam) -> dict:
    enrolled = getattr(exam, "enrolled_count", None)
    if enrolled is None:
        enrolled = exam.enrollments.count()
    return {
        "id": exam.pk,
        "title": exam.title,
        "description": exam.description,
        "date": exam.date.isoformat(),
        "location": exam.location,
        "belt_from": exam.belt_from,
        "belt_to": exam.belt_to,
        "capacity": exam.capacity,
        "exam_fee": str(exam.exam_fee) if exam.exam_fee is not None else None,
        "min_attendances": exam.min_attendances,
        "min_videos_completed": exam.min_videos_completed,
        "status": exam.status,
        "enrolled_count": enrolled,
        "created_by": exam.created_by_id,
        "created_at": exam.created_at.isoformat(),
        "updated_at": exam.updated_at.isoformat(),
    }


def serialize_enrollment(enrollment: ExamEnrollment) -> dict:
    return {
        "id": enrollment.pk,
        "exam_id": enrollment.exam_id,
        "student": _member(enrollment.user),
        "result": enrollment.result,
        "score": enrollment.score,
        "feedback": enrollment.feedback,
        "registered_at": enrollment.registered_at.isoformat(),
        "evaluated_at": enrollment.evaluated_at.isoformat() if enrollment.evaluated_at else None,
    }


def serialize_requirements(row: services.EnrollmentRequirements) -> dict:
    data = serialize_enrollment(row.enrollment)
    data["requirements"] = {
        "attendances": {
            "current": row.attendances.current,
            "required": row.attendances.required,
            "met": row.attendances.met,
        },
        "videos": {
            "current": row.videos.current,
            "required": row.videos.required,
            "met": row.videos.met,
        },
    }
    return data


def serialize_promotion(promotion: Promotion) -> dict:
    return {
        "id": promotion.pk,
        "student": _member(promotion.student),
        "from_belt": promotion.from_belt,
        "from_stripe": promotion.from_stripe,
        "to_belt": promotion.to_belt,
        "to_stripe": promotion.to_stripe,
        "promoted_at": promotion.promoted_at.isoformat(),
        "promoted_by": promotion.promoted_by_id,
        "exam_id": promotion.exam_id,
        "notes": promotion.notes,
    }


@api_view(["GET", "POST"])
def exam_list(request):
    if request.method == "POST":
        data = request.data
        exam = services.create_exam(
            actor=request.user,
            title=required(data, "title"),
            exam_date=date_param(required(data, "date"), "date"),
            belt_from=required(data, "belt_from"),
            belt_to=required(data, "belt_to"),
            location=data.get("location", ""),
            description=data.get("description", ""),
            capacity=data.get("capacity"),
            exam_fee=data.get("exam_fee"),
            min_attendances=data.get("min_attendances"),
            min_videos_completed=data.get("min_videos_completed"),
        )
        return JsonResponse(serialize_exam(exam), status=201)

    exams = services.list_exams(
        actor=request.user,
        status=request.GET.get("status"),
        belt_to=request.GET.get("belt_to"),
        upcoming=request.GET.get("upcoming") in ("1", "true"),
    )
    return paginate(request, exams, serialize_exam)


@api_view(["GET", "PATCH", "DELETE"])
def exam_detail(request, exam_id):
    if request.method == "PATCH":
        changes = dict(request.data)
        unknown = sorted(set(changes) - services.UPDATABLE_EXAM_FIELDS)
        if unknown:
            raise ValidationError({name: "This field cannot be changed." for name in unknown})
        if "date" in changes:
            changes["date"] = date_param(changes["date"], "date")
        exam = services.update_exam(actor=request.user, exam_id=exam_id, **changes)
        return JsonResponse(serialize_exam(exam))
    if request.method == "DELETE":
        services.delete_exam(actor=request.user, exam_id=exam_id)
        return HttpResponse(status=204)
    return JsonResponse(serialize_exam(services.get_exam(actor=request.user, exam_id=exam_id)))


@api_view(["GET", "POST"])
def exam_students(request, exam_id):
    if request.method == "POST":
        student_id = int_param(required(request.data, "student_id"), "student_id")
        enrollment = services.enroll_student(actor=request.user, exam_id=exam_id, student_id=student_id)
        return JsonResponse(serialize_enrollment(enrollment), status=201)
    rows = services.list_with_requirements(actor=request.user, exam_id=exam_id)
    return JsonResponse({"data": [serialize_requirements(row) for row in rows]})


@api_view(["DELETE"])
def exam_student_detail(request, exam_id, student_id):
    services.remove_student(actor=request.user, exam_id=exam_id, student_id=student_id)
    return HttpResponse(status=204)


@api_view(["POST"])
def exam_evaluations(request, exam_id):
    evaluations = request.data.get("evaluations")
    if not isinstance(evaluations, list):
        evaluations = []
    summary = services.evaluate_exam(actor=request.user, exam_id=exam_id, evaluations=evaluations)
    return JsonResponse(
        {
            "exam_status": summary.exam_status,
            "total": summary.total,
            "approved": summary.approved,
            "failed": summary.failed,
            "no_show": summary.no_show,
            "results": [
                {"enrollment_id": outcome.enrollment_id, "result": outcome.result, "promoted": outcome.promoted}
                for outcome in summary.results
            ],
        },
        status=201,
    )


@api_view(["GET", "POST"])
def promotion_list(request):
    if request.method == "POST":
        data = request.data
        promotion = services.promote_student(
            actor=request.user,
            student_id=int_param(required(data, "student_id"), "student_id"),
            to_belt=required(data, "to_belt"),
            to_stripe=int_param(data.get("to_stripe"), "to_stripe", 0),
            notes=data.get("notes") or "",
            exam_id=int_param(data.get("exam_id"), "exam_id"),
        )
        return JsonResponse(serialize_promotion(promotion), status=201)

    promotions = services.list_promotions(
        actor=request.user,
        student_id=int_param(request.GET.get("student_id"), "student_id"),
    )
    return paginate(request, promotions, serialize_promotion)


@api_view(["GET", "DELETE"])
def promotion_detail(request, promotion_id):
    if request.method == "DELETE":
        student = services.reverse_promotion(actor=request.user, promotion_id=promotion_id)
        return JsonResponse({"student": _member(student)})
    return JsonResponse(serialize_promotion(services.get_promotion(actor=request.user, promotion_id=promotion_id)))
