"""Services Layer — stateful components that mirror backend state locally.

Invariants:
    - Each cache is mutated only by the component that owns it
    - Public operations are total: success value / None, or a RoadmapError value

Design Decisions:
    - One component per concern, wired together by RoadmapClient
"""
