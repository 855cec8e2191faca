"""Core Layer — pure domain types, errors, and invariant checks. No IO.

Invariants:
    - No module in core/ imports from services/ or infrastructure/
    - All functions outside gateway_protocols are pure and deterministic

Design Decisions:
    - Functional core separated from the stateful services shell
"""
