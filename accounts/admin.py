from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import Academy, User


@admin.register(Academy)
class AcademyAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "timezone", "created_at")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(User)
class AcademyUserAdmin(UserAdmin):
    list_display = ("username", "email", "academy", "role", "belt", "stripe", "is_active")
    list_filter = ("academy", "role", "belt", "is_active")
    fieldsets = UserAdmin.fieldsets + (
        ("Academy", {"fields": ("academy", "role", "phone")}),
        ("Rank", {"fields": ("belt", "stripe")}),
    )
    # Rank only changes through the promotion ledger.
    readonly_fields = ("belt", "stripe")
