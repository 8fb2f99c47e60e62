"""
Propagation Errors
==================

Exception taxonomy raised by propagators.

Hierarchy:
----------
  PropagationError
  ├── InvalidConfiguration : missing/non-finite interval, bad sampling interval
  ├── UnknownBody          : body was never registered
  ├── NoStateAvailable     : final state requested before a completed run
  └── PropagationDiverged  : non-finite state or integrator failure
"""
from typing import Any, Optional


class PropagationError(Exception):
  """
  Base class for all propagation errors.
  """
  def __init__(
    self,
    message : str,
    body    : Any = None,
  ):
    super().__init__(message)
    self.message = message
    self.body    = body


class InvalidConfiguration(PropagationError, ValueError):
  pass


class UnknownBody(PropagationError, KeyError):
  """
  Raised when an operation references a body that is not registered.
  """
  def __init__(
    self,
    body : Any,
  ):
    super().__init__(f"Body {body!r} is not registered with this propagator", body)

  def __str__(self):
    # KeyError quotes its argument, keep the plain message
    return self.message


class NoStateAvailable(PropagationError, LookupError):
  pass


class PropagationDiverged(PropagationError, ArithmeticError):
  """
  Raised when numerical advancement of one or more bodies fails.

  Attributes:
  -----------
    body : Body | None
      First body that failed.
    time : float | None
      Time of the last good state of that body [s].
    failures : dict
      Mapping of failed body -> failure message for the whole run.
  """
  def __init__(
    self,
    message  : str,
    body     : Any             = None,
    time     : Optional[float] = None,
    failures : Optional[dict]  = None,
  ):
    super().__init__(message, body)
    self.time     = time
    self.failures = failures if failures is not None else ({body: message} if body is not None else {})
