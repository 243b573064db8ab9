"""Services Layer — user repository orchestrating store, network, and connectivity.

Invariants:
    - Services depend on core protocols, never on concrete infrastructure classes
"""
