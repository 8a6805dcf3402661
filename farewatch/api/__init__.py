"""
FastAPI application for FareWatch.
"""
