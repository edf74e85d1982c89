"""Bookings app package.

This app encapsulates the booking domain: the booking model, the
reservation coordinator that takes inventory atomically and idempotently,
the lifecycle state machine and the Celery reaper for unpaid holds.
"""
