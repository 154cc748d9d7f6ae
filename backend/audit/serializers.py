"""
Audit app serializers.

``AuditLogFilterSerializer`` validates query parameters; ``AuditLogSerializer``
renders entries.  Neither accepts writes to the audit trail.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import AuditAction, AuditLog, AuditResourceType


class AuditLogFilterSerializer(serializers.Serializer):
    """Validates ``GET /api/audit-logs/`` query parameters."""

    user = serializers.IntegerField(required=False, min_value=1)
    action = serializers.ChoiceField(choices=AuditAction.choices, required=False)
    resource_type = serializers.ChoiceField(choices=AuditResourceType.choices, required=False)
    resource_id = serializers.CharField(required=False, max_length=64)
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)
    limit = serializers.IntegerField(required=False, min_value=1)

    def validate(self, attrs):
        start, end = attrs.get("start"), attrs.get("end")
        if start and end and start > end:
            raise serializers.ValidationError({"end": "Must not be earlier than start."})
        return attrs


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = [
            "id",
            "timestamp",
            "user",
            "username",
            "action",
            "resource_type",
            "resource_id",
            "description",
            "success",
            "ip_address",
            "user_agent",
            "metadata",
        ]
        read_only_fields = fields
