"""Pydantic Schemas — validation of backend records and gateway envelopes.

Invariants:
    - Schemas validate at the system boundary (gateway payloads)
"""
