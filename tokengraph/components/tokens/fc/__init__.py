"""
Functional Core (FC) - Pure token graph logic.

Every function here is deterministic and side-effect free. Trees go in,
new trees or read projections come out. The stateful store in
``_impl`` orchestrates these functions.
"""
