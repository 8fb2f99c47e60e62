"""
Propagation Package
===================

Propagator base class, concrete numerical propagators, and the error taxonomy.
"""

from .errors               import InvalidConfiguration, NoStateAvailable, PropagationDiverged, PropagationError, UnknownBody
from .propagator           import Propagator
from .numerical_propagator import NBodyPropagator, NumericalPropagator
from .registry             import PropagationStatus

__all__ = [
  'Propagator',
  'NumericalPropagator',
  'NBodyPropagator',
  'PropagationStatus',
  'PropagationError',
  'InvalidConfiguration',
  'UnknownBody',
  'NoStateAvailable',
  'PropagationDiverged',
]
