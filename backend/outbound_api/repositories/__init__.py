"""
Outbound Ops API — Repositories Package
=========================================

What:  Narrow async persistence contracts over the relational database.
Why:   Route handlers and the rate limiter depend on these functions, not on
       SQL, so tests can patch them one at a time.

Repository Inventory:
    - health.py:               check_database()
    - users.py:                get_user_by_ops_id(), get_user_by_email(), list_processors()
    - auth_sessions.py:        get_auth_session_with_user(), update_auth_session_last_seen(),
                               delete_auth_session()
    - session_rate_limits.py:  get/reset/increment of per-session counters

Every function takes the request's AsyncSession first and raises
DatabaseError (via run_query) when the database fails.
"""
