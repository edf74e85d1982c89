"""
Shared Kernel

Error taxonomy, value objects and infrastructure glue shared by the
hotels, inventory, bookings and finances apps.
"""
