"""
Outbound Ops API — Services Package
=====================================

Services:
    - cache_control.py: Cache-Control header builder and presets
    - validation.py:    JSON body validation returning data or a 400 response
    - metrics.py:       Process-wide request/error counters
    - monitoring.py:    Sentry error reporting sink
    - server_cache.py:  In-process TTL cache for lookup data
    - auth.py:          Session cookie resolution
"""
