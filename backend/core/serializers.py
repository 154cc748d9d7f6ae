"""
Core app serializers.

**Response-only** serializers for the notification inbox.  They do
**not** accept input data; the inbox endpoints take no request body.
"""

from __future__ import annotations

from rest_framework import serializers


# ════════════════════════════════════════════════════════════════════
#  Notifications
# ════════════════════════════════════════════════════════════════════

class NotificationSerializer(serializers.Serializer):
    """
    Read-only serializer for ``Notification`` instances.

    Used by the Notification ViewSet to list and retrieve notifications
    for the authenticated user.
    """

    id = serializers.IntegerField(read_only=True, help_text="Notification PK.")
    title = serializers.CharField(
        read_only=True,
        help_text="Short notification title.",
    )
    message = serializers.CharField(
        read_only=True,
        help_text="Full notification message body.",
    )
    type = serializers.CharField(
        read_only=True,
        help_text="One of info / warning / success / error.",
    )
    is_read = serializers.BooleanField(
        read_only=True,
        help_text="Whether the recipient has marked this notification as read.",
    )
    is_urgent = serializers.BooleanField(
        read_only=True,
        help_text="Whether the notification should be highlighted.",
    )
    resource_type = serializers.CharField(
        read_only=True,
        allow_null=True,
        help_text="Kind of object the notification is about (if any).",
    )
    resource_id = serializers.CharField(
        read_only=True,
        allow_null=True,
        help_text="Identifier of the related object (if any).",
    )
    created_at = serializers.DateTimeField(
        read_only=True,
        help_text="When the notification was created.",
    )


class UnreadCountSerializer(serializers.Serializer):
    count = serializers.IntegerField(read_only=True)


class BulkResultSerializer(serializers.Serializer):
    """Result of a bulk inbox operation (read-all / clear-all)."""

    count = serializers.IntegerField(
        read_only=True,
        help_text="Number of notifications affected.",
    )
