import pytest
from django.core.cache import cache

from apps.finances.gateways import get_payment_gateway


@pytest.fixture(autouse=True)
def _isolated_caches():
    cache.clear()
    get_payment_gateway.cache_clear()
    yield
    cache.clear()
    get_payment_gateway.cache_clear()
