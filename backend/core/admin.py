from django.contrib import admin

from .models import Notification, Sequence


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "recipient", "title", "type", "is_urgent",
                    "is_read", "created_at")
    list_filter = ("type", "is_read", "is_urgent", "resource_type")
    search_fields = ("title", "message", "recipient__username")


@admin.register(Sequence)
class SequenceAdmin(admin.ModelAdmin):
    list_display = ("key", "value")
    readonly_fields = ("key", "value")
