"""Rental billing backend: meter readings, invoices, late fees and payments."""

__version__ = "0.1.0"
