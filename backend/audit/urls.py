"""
Audit app URL configuration.

URL prefix (registered in ``casework/urls.py``)::

    path('api/audit-logs/', include('audit.urls'))

GET /api/audit-logs/  — Query the audit trail (administrators only).
"""

from django.urls import path

from .views import AuditLogListView

app_name = "audit"

urlpatterns = [
    path("", AuditLogListView.as_view(), name="audit-log-list"),
]
