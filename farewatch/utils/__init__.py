"""Shared helpers: cron evaluation, clocks, date expressions, retries, logging."""
