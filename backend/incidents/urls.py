"""
Incidents app URL configuration.

Included in the project-level ``urls.py`` as::

    path('api/incidents/', include('incidents.urls')),

Every route comes from ``IncidentViewSet``; see its docstring for the
endpoint map.
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import IncidentViewSet

app_name = "incidents"

router = SimpleRouter()
router.register(r"", IncidentViewSet, basename="incident")

urlpatterns = [
    path("", include(router.urls)),
]
