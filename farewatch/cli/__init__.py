"""Command-line interface for FareWatch."""
