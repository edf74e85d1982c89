"""URL routing for the finance domain."""

from __future__ import annotations

from rest_framework.routers import SimpleRouter  # type: ignore

from .views import PaymentViewSet

router = SimpleRouter()
router.register(r"payments", PaymentViewSet, basename="payment")

urlpatterns = router.urls
