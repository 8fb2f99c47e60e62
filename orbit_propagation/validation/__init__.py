"""
Validation Package
==================

Test suite for the propagation core, the numerical propagators, and the
configuration layer.

Modules:
--------
- test_interval             : Interval validation and output time grid
- test_registry             : Body registry and history recorder
- test_propagator           : Propagation lifecycle, sampling, and delegation
- test_numerical_propagator : Numerical accuracy, divergence, and n-body coupling
- test_dynamics             : Acceleration models
- test_configuration        : Scenario parsing, runner, and entry point

Usage:
------
Run all tests:
  python -m pytest orbit_propagation/validation/ -v

Run a specific test class:
  python -m pytest orbit_propagation/validation/test_propagator.py::TestDelegation -v
"""
