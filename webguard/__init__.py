"""Async CORS and Redis-backed rate limiting middleware for HTTP services."""

__version__ = "0.1.0"