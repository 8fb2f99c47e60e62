"""
Orbit Propagation
=================

Multi-body state propagation with fixed-interval history recording and
per-body delegation to nested propagators.
"""
