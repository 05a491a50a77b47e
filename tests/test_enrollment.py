import datetime

import pytest
from django.core.exceptions import PermissionDenied, ValidationError

from accounts.belts import Belt
from accounts.exceptions import Conflict, NotFound
from accounts.models import User
from attendance.models import AttendanceRecord, ClassType
from exams import services
from exams.models import Exam, ExamEnrollment

pytestmark = pytest.mark.django_db


def test_enroll_eligible_student(instructor, exam, student):
    enrollment = services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=student.pk)

    assert enrollment.result == ExamEnrollment.RESULT_PENDING
    assert enrollment.score is None
    assert enrollment.evaluated_at is None


@pytest.mark.parametrize("belt", [b for b in Belt if b != Belt.WHITE])
def test_belt_must_match_origin(instructor, exam, make_user, belt):
    candidate = make_user(belt=belt)
    with pytest.raises(ValidationError):
        services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=candidate.pk)
    assert not exam.enrollments.exists()


def test_capacity_is_enforced(instructor, make_exam, make_user):
    exam = make_exam(capacity=2)
    for _ in range(2):
        services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=make_user().pk)

    with pytest.raises(Conflict):
        services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=make_user().pk)
    assert exam.enrollments.count() == 2


def test_unlimited_capacity(instructor, exam, make_user):
    for _ in range(5):
        services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=make_user().pk)
    assert exam.enrollments.count() == 5


def test_double_booking_rejected(instructor, exam, student):
    services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=student.pk)
    with pytest.raises(Conflict):
        services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=student.pk)
    assert exam.enrollments.count() == 1


@pytest.mark.parametrize("status", [Exam.STATUS_COMPLETED, Exam.STATUS_CANCELLED])
def test_closed_exam_rejects_enrollment(instructor, make_exam, student, status):
    exam = make_exam(status=status)
    with pytest.raises(Conflict):
        services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=student.pk)


def test_in_progress_exam_still_accepts_enrollment(instructor, make_exam, student):
    exam = make_exam(status=Exam.STATUS_IN_PROGRESS)
    services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=student.pk)
    assert exam.enrollments.count() == 1


def test_student_cannot_enroll_anyone(exam, student):
    with pytest.raises(PermissionDenied):
        services.enroll_student(actor=student, exam_id=exam.pk, student_id=student.pk)


def test_unknown_exam_and_student(instructor, exam):
    with pytest.raises(NotFound):
        services.enroll_student(actor=instructor, exam_id=999999, student_id=instructor.pk)
    with pytest.raises(NotFound):
        services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=999999)


def test_cross_tenant_enrollment(outsider_admin, exam, student, instructor, make_user, other_academy):
    with pytest.raises(PermissionDenied):
        services.enroll_student(actor=outsider_admin, exam_id=exam.pk, student_id=student.pk)

    foreign_student = make_user(academy=other_academy)
    with pytest.raises(NotFound):
        services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=foreign_student.pk)
    assert not exam.enrollments.exists()


def test_inactive_student_is_not_found(instructor, exam, make_user):
    retired = make_user(is_active=False)
    with pytest.raises(NotFound):
        services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=retired.pk)


def test_remove_pending_enrollment(instructor, exam, student):
    services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=student.pk)
    services.remove_student(actor=instructor, exam_id=exam.pk, student_id=student.pk)
    assert not exam.enrollments.exists()


def test_remove_evaluated_enrollment_is_rejected(instructor, exam, student):
    enrollment = services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=student.pk)
    enrollment.result = ExamEnrollment.RESULT_FAILED
    enrollment.save()
    with pytest.raises(Conflict):
        services.remove_student(actor=instructor, exam_id=exam.pk, student_id=student.pk)


def test_remove_missing_enrollment(instructor, exam, student):
    with pytest.raises(NotFound):
        services.remove_student(actor=instructor, exam_id=exam.pk, student_id=student.pk)


def test_requirements_listing(instructor, make_exam, student, make_user):
    exam = make_exam(min_attendances=2, min_videos_completed=None)
    services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=student.pk)
    for day in (1, 2, 3):
        AttendanceRecord.objects.create(user=student, date=datetime.date(2024, 5, day), class_type=ClassType.GI)

    rows = services.list_with_requirements(actor=instructor, exam_id=exam.pk)

    assert len(rows) == 1
    row = rows[0]
    assert row.enrollment.user_id == student.pk
    assert row.attendances.current == 3
    assert row.attendances.required == 2
    assert row.attendances.met
    assert row.videos.current == 0
    assert row.videos.met


def test_requirements_not_met(instructor, make_exam, student):
    exam = make_exam(min_attendances=10)
    services.enroll_student(actor=instructor, exam_id=exam.pk, student_id=student.pk)
    (row,) = services.list_with_requirements(actor=instructor, exam_id=exam.pk)
    assert not row.attendances.met


def test_exam_crud(instructor, admin_user):
    exam = services.create_exam(
        actor=instructor,
        title="Blue to Purple",
        exam_date=datetime.date(2024, 9, 1),
        belt_from=Belt.BLUE,
        belt_to=Belt.PURPLE,
        capacity=10,
    )
    assert exam.academy_id == instructor.academy_id
    assert exam.status == Exam.STATUS_SCHEDULED
    assert exam.created_by == instructor

    exam = services.update_exam(actor=instructor, exam_id=exam.pk, location="Main mat", status=Exam.STATUS_IN_PROGRESS)
    assert exam.location == "Main mat"
    assert exam.status == Exam.STATUS_IN_PROGRESS

    with pytest.raises(PermissionDenied):
        services.delete_exam(actor=instructor, exam_id=exam.pk)
    services.delete_exam(actor=admin_user, exam_id=exam.pk)
    assert not Exam.objects.filter(pk=exam.pk).exists()


def test_target_belt_must_be_higher(instructor):
    with pytest.raises(ValidationError):
        services.create_exam(
            actor=instructor,
            title="Backwards",
            exam_date=datetime.date(2024, 9, 1),
            belt_from=Belt.BLUE,
            belt_to=Belt.WHITE,
        )


def test_zero_capacity_is_invalid(instructor):
    with pytest.raises(ValidationError):
        services.create_exam(
            actor=instructor,
            title="No seats",
            exam_date=datetime.date(2024, 9, 1),
            belt_from=Belt.WHITE,
            belt_to=Belt.BLUE,
            capacity=0,
        )


def test_status_transitions(instructor, make_exam):
    exam = make_exam()
    with pytest.raises(Conflict):
        services.update_exam(actor=instructor, exam_id=exam.pk, status=Exam.STATUS_COMPLETED)
    with pytest.raises(ValidationError):
        services.update_exam(actor=instructor, exam_id=exam.pk, status="postponed")

    services.update_exam(actor=instructor, exam_id=exam.pk, status=Exam.STATUS_CANCELLED)
    exam = services.update_exam(actor=instructor, exam_id=exam.pk, status=Exam.STATUS_SCHEDULED)
    assert exam.status == Exam.STATUS_SCHEDULED


def test_completed_exam_is_frozen(instructor, admin_user, make_exam):
    exam = make_exam(status=Exam.STATUS_COMPLETED)
    with pytest.raises(Conflict):
        services.update_exam(actor=instructor, exam_id=exam.pk, title="Renamed")
    with pytest.raises(Conflict):
        services.delete_exam(actor=admin_user, exam_id=exam.pk)


def test_unknown_fields_cannot_be_updated(instructor, exam):
    with pytest.raises(ValidationError):
        services.update_exam(actor=instructor, exam_id=exam.pk, academy_id=42)


def test_list_exams_is_tenant_scoped(instructor, make_exam, other_academy, outsider_admin, student):
    make_exam()
    make_exam(status=Exam.STATUS_CANCELLED)
    make_exam(academy=other_academy, created_by=outsider_admin)
    services.enroll_student(actor=instructor, exam_id=make_exam().pk, student_id=student.pk)

    exams = list(services.list_exams(actor=instructor))
    assert len(exams) == 3
    assert sum(exam.enrolled_count for exam in exams) == 1
    assert services.list_exams(actor=instructor, status=Exam.STATUS_CANCELLED).count() == 1


def test_list_exams_without_academy(make_user):
    drifter = make_user(role=User.Role.ADMIN, academy=None)
    assert not services.list_exams(actor=drifter).exists()
