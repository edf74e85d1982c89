"""App configuration for finances."""

from __future__ import annotations

from django.apps import AppConfig  # type: ignore


class FinancesConfig(AppConfig):
    name = "apps.finances"
    label = "finances"
    verbose_name = "Финансы"

    def ready(self) -> None:
        from .gateways import get_payment_gateway

        # fail fast on a misconfigured gateway instead of on the first payment
        get_payment_gateway()
