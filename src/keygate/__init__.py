"""Keygate - authentication and entitlement core for a license key platform.

The ``keygate`` package holds the shared kernel used by the domain packages
(UTC clock helpers, error codes, the SQLAlchemy declarative base) and the
FastAPI presentation layer that wires them together:

    keygate_config      # settings and immutable policies
    keygate_identity    # users, credentials, tokens, lockout, rate limits, RBAC
    keygate_licensing   # hardware-ID binding
    keygate_audit       # audit trail
"""
