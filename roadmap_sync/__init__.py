"""Roadmap Sync — client-side state engine for action/query roadmap backends.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
"""
