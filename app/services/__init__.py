"""Persistence and integration services around the subscription engine."""
