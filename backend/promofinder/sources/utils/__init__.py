"""Shared helpers for source adapters."""
