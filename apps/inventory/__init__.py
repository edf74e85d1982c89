"""Inventory app package.

Per-day and per-slot capacity counters for room types, the store that
reserves and releases them atomically, and the read-side availability
calculator.
"""
