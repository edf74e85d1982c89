"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.errors import EngineError

from .lifecycle import BookingLifecycle
from .models import Booking

logger = logging.getLogger(__name__)


@shared_task(name="bookings.expire_booking_hold")
def expire_booking_hold(booking_id: int) -> bool:
    """Отменяет конкретную бронь, если оплата не поступила в срок."""

    try:
        return BookingLifecycle().expire_hold(booking_id)
    except EngineError as exc:
        logger.warning("Hold expiration skipped for booking %s: %s", booking_id, exc.message)
        return False


# ============================================================================
# PERIODIC TASKS (запускаются автоматически через Celery Beat)
# ============================================================================

@shared_task(name="bookings.expire_pending_bookings")
def expire_pending_bookings() -> dict[str, int]:
    """
    Автоматическая отмена просроченных броней.

    Ищет бронирования со статусом PENDING, у которых истек hold_expires_at,
    и отменяет их тем же путём, что и ручная отмена: номера возвращаются
    в инвентарь, комиссия аннулируется.

    Запускается каждую минуту через Celery Beat.

    Returns:
        dict: {"expired": количество отмененных броней}
    """
    lifecycle = BookingLifecycle()
    expired_count = 0

    expired_ids = list(
        Booking.objects.filter(
            status=Booking.Status.PENDING,
            hold_expires_at__lte=timezone.now(),
        ).values_list("id", flat=True)
    )

    for booking_id in expired_ids:
        try:
            if lifecycle.expire_hold(booking_id):
                expired_count += 1
        except EngineError as exc:
            logger.error("Error expiring booking %s: %s", booking_id, exc.message)

    if expired_count > 0:
        logger.info("Expired %s pending bookings", expired_count)

    return {"expired": expired_count}
