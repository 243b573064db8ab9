"""Infrastructure Layer — database, remote directory client, connectivity, logging.

Invariants:
    - Every external failure mapped to a RosterError subclass (core/errors.py)
    - No retries: a failed call is reported once and returned to the caller

Design Decisions:
    - Thin wrappers over SQLAlchemy and httpx: error mapping lives at the boundary
"""
