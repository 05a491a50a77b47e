from django.contrib import admin

from .models import AttendanceRecord, ClassSchedule


@admin.register(ClassSchedule)
class ClassScheduleAdmin(admin.ModelAdmin):
    list_display = ("name", "academy", "class_type", "day_of_week", "start_time", "end_time", "capacity", "active")
    list_filter = ("academy", "class_type", "day_of_week", "active")
    search_fields = ("name",)


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ("user", "date", "class_type", "schedule", "registered_by", "created_at")
    list_filter = ("class_type", "user__academy")
    search_fields = ("user__username", "notes")
    date_hierarchy = "date"
