"""Celery tasks for FareWatch."""
