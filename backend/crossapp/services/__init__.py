"""Services Layer — registry, routing, fan-out queries, sync queue and domain operations.

Invariants:
    - Services receive collaborators through constructors (no module singletons)
    - Queue dispatch uses an explicit dict mapping (sync_dispatch.py)

Design Decisions:
    - build_context() in context.py is the single place where services are wired
"""
