"""FastAPI application for the Keygate auth and entitlement core."""
