"""Finances app package.

Payments, refunds and platform commission for bookings, plus the payment
gateway strategies (demo and Razorpay) selected once per process.
"""
