"""
URL configuration for the Guincoin ledger service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/coins/                 - Coin ledger endpoints
        accounts/balance/          - Own balance
        accounts/transactions/     - Own transaction history
        accounts/pending/          - Own pending transactions
        transfers/limits/          - Transfer limit usage
        transfers/send/            - Send coins to a peer
        transfers/history/         - Sent transfers
        transfers/pending/         - Own escrowed transfers
        transfers/{id}/cancel/     - Cancel an escrowed transfer
        manager/allotment/         - Manager budget
        manager/award/             - Award coins
        manager/history/           - Awards given
        admin/allotments/{id}/deposit/   - Deposit allotment
        admin/allotments/{id}/recurring/ - Set recurring budget
        admin/employees/{id}/adjust/     - Adjust balance
        admin/ledger/reconcile/    - Reconcile ledger
        admin/ledger/report/       - Daily report

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("coins/", include("coins.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Guincoin Admin"
admin.site.site_title = "Guincoin"
admin.site.index_title = "Ledger administration"
