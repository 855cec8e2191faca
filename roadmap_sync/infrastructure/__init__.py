"""Infrastructure Layer — httpx transports, session context, logging setup.

Invariants:
    - Infrastructure never imports from services/
    - All external calls wrapped with timeout and error mapping

Design Decisions:
    - Fail-soft gateway: transport errors become values at this boundary
"""
