"""Hotels app package.

Holds the hotel (tenant) and room type pricing templates that the
inventory, availability and reservation code reads.
"""
