from django.contrib import admin

from .models import (
    CaseFile,
    Incident,
    IncidentEvidence,
    IncidentNote,
    IncidentPerson,
    IncidentVehicle,
    TimelineEntry,
)


class CaseFileInline(admin.StackedInline):
    model = CaseFile
    can_delete = False
    extra = 0


class IncidentVehicleInline(admin.TabularInline):
    model = IncidentVehicle
    extra = 0


class IncidentPersonInline(admin.TabularInline):
    model = IncidentPerson
    extra = 0


class TimelineEntryInline(admin.TabularInline):
    model = TimelineEntry
    extra = 0
    readonly_fields = ("date", "action", "description", "performed_by")
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Incident)
class IncidentAdmin(admin.ModelAdmin):
    list_display = ("incident_number", "title", "type", "severity",
                    "status", "reported_by", "assigned_to", "created_at")
    list_filter = ("status", "type", "severity")
    search_fields = ("incident_number", "title", "description")
    readonly_fields = ("incident_number", "status", "version")
    inlines = [CaseFileInline, IncidentVehicleInline,
               IncidentPersonInline, TimelineEntryInline]


@admin.register(IncidentEvidence)
class IncidentEvidenceAdmin(admin.ModelAdmin):
    list_display = ("incident", "type", "collected_by", "collected_at")
    list_filter = ("type",)


@admin.register(IncidentNote)
class IncidentNoteAdmin(admin.ModelAdmin):
    list_display = ("incident", "author", "is_private", "created_at")
    list_filter = ("is_private",)
