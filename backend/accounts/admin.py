from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db.models import Count

from .models import Role, User


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "hierarchy_level", "member_count", "description")
    search_fields = ("name",)
    ordering = ("-hierarchy_level",)

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_member_count=Count("users"))

    @admin.display(description="Members", ordering="_member_count")
    def member_count(self, obj):
        return obj._member_count


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "role", "is_active", "last_login")
    list_select_related = ("role",)
    search_fields = ("username", "email", "phone_number", "first_name", "last_name")
    list_filter = ("role", "is_active", "is_superuser")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Casework", {"fields": ("role", "phone_number")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Casework", {"fields": ("email", "role", "phone_number")}),
    )
