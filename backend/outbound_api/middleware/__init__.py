"""
Outbound Ops API — Request Governance Package
===============================================

What:  Cross-cutting concerns every API route passes through.

Composition (per route handler):
    with_request_logging  → request id, timing, logs, metrics, 500 translation
      └── handler         → may call enforce_ip_rate_limit / enforce_session_rate_limit
                            before doing any work, then parse_request_json for its body

    The wrapper is a decorator rather than ASGI middleware so each route
    reports under its own stable route name (the path template).
"""
