from django.contrib import admin, messages
from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError

from accounts.exceptions import Conflict
from . import services
from .models import Exam, ExamEnrollment, Promotion

SERVICE_ERRORS = (Conflict, PermissionDenied, ValidationError, ObjectDoesNotExist)


class ExamEnrollmentInline(admin.TabularInline):
    model = ExamEnrollment
    extra = 0
    fields = ("user", "result", "score", "registered_at", "evaluated_at")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ("title", "academy", "date", "belt_from", "belt_to", "capacity", "status", "created_by")
    list_filter = ("academy", "status", "belt_to")
    search_fields = ("title", "location")
    readonly_fields = ("status", "created_by", "created_at", "updated_at")
    inlines = [ExamEnrollmentInline]
    actions = ["cancel_exams"]

    # Completed exams are read-only history.
    def has_change_permission(self, request, obj=None):
        if obj is not None and obj.is_completed:
            return False
        return super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.is_completed:
            return False
        return super().has_delete_permission(request, obj)

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions

    def delete_model(self, request, obj):
        services.delete_exam(actor=request.user, exam_id=obj.pk)

    def cancel_exams(self, request, queryset):
        count = 0
        for exam in queryset:
            try:
                services.update_exam(actor=request.user, exam_id=exam.pk, status=Exam.STATUS_CANCELLED)
                count += 1
            except SERVICE_ERRORS as exc:
                self.message_user(request, f"Failed to cancel {exam}: {exc}", level=messages.ERROR)
        if count:
            self.message_user(request, f"Cancelled {count} exam(s).", level=messages.SUCCESS)

    cancel_exams.short_description = "Cancel selected exams"


@admin.register(ExamEnrollment)
class ExamEnrollmentAdmin(admin.ModelAdmin):
    list_display = ("exam", "user", "result", "score", "registered_at", "evaluated_at")
    list_filter = ("result", "exam__academy")
    search_fields = ("user__username", "exam__title")
    readonly_fields = ("exam", "user", "result", "score", "feedback", "registered_at", "evaluated_at")

    # Enrollments are created and evaluated through the exam services only.
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        if obj is not None and not obj.is_pending:
            return False
        return super().has_delete_permission(request, obj)

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions

    def delete_model(self, request, obj):
        services.remove_student(actor=request.user, exam_id=obj.exam_id, student_id=obj.user_id)


@admin.register(Promotion)
class PromotionAdmin(admin.ModelAdmin):
    list_display = ("student", "from_belt", "from_stripe", "to_belt", "to_stripe", "promoted_at", "promoted_by", "exam")
    list_filter = ("to_belt", "student__academy")
    search_fields = ("student__username", "notes")
    readonly_fields = (
        "student",
        "from_belt",
        "from_stripe",
        "to_belt",
        "to_stripe",
        "promoted_at",
        "promoted_by",
        "exam",
    )
    actions = ["reverse_promotions"]

    def has_add_permission(self, request):
        return False

    def get_actions(self, request):
        actions = super().get_actions(request)
        # Deleting a ledger row must restore the student's rank.
        actions.pop("delete_selected", None)
        return actions

    def delete_model(self, request, obj):
        services.reverse_promotion(actor=request.user, promotion_id=obj.pk)

    def reverse_promotions(self, request, queryset):
        count = 0
        for promotion in queryset.order_by("-promoted_at", "-id"):
            try:
                services.reverse_promotion(actor=request.user, promotion_id=promotion.pk)
                count += 1
            except SERVICE_ERRORS as exc:
                self.message_user(request, f"Failed to reverse {promotion}: {exc}", level=messages.ERROR)
        if count:
            self.message_user(request, f"Reversed {count} promotion(s).", level=messages.SUCCESS)

    reverse_promotions.short_description = "Reverse selected promotions"
