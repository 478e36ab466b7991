"""Billing services: pure computation plus database-backed operations."""
