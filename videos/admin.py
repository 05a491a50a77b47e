from django.contrib import admin

from .models import Video, VideoProgress


@admin.register(Video)
class VideoAdmin(admin.ModelAdmin):
    list_display = ("title", "academy", "category", "min_belt", "max_belt", "is_published", "view_count")
    list_filter = ("academy", "category", "is_published")
    search_fields = ("title",)
    readonly_fields = ("view_count", "created_at")


@admin.register(VideoProgress)
class VideoProgressAdmin(admin.ModelAdmin):
    list_display = ("user", "video", "percentage", "completed", "updated_at")
    list_filter = ("completed",)
    search_fields = ("user__username", "video__title")
