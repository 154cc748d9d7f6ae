from django.contrib import admin

from .models import Vehicle


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ("license_plate", "make", "model", "year", "color", "owner")
    search_fields = ("license_plate", "vin", "make", "model")
    list_filter = ("make",)
