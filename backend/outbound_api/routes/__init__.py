"""
Outbound Ops API — API Routes Package
=======================================

Route Inventory:
    - health.py:  GET  /api/health, /api/health/readiness, /api/ping
    - metrics.py: GET  /api/metrics
    - users.py:   GET  /api/users/ops/{ops_id}
    - lookup.py:  GET  /api/lookup/processors
    - auth.py:    POST /api/auth/change-password (410), POST /api/auth/logout

Design Principle:
    Routes answer their own expected outcomes (400/401/403/404/410/429) with
    explicit responses. Anything unexpected propagates to with_request_logging,
    which logs it, reports it, and answers a generic 500.
"""
