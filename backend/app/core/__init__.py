"""Core Layer — domain types, validation, ordering, and boundary contracts.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - No IO: persistence and network live behind repository_protocols

Design Decisions:
    - Functional core separated from imperative shell
"""
