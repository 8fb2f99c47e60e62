"""
Bodies and States
=================

Identity tokens for propagated bodies and the state snapshots recorded for them.

Units:
------
- Time     : seconds [s]
- Position : meters [m]
- Velocity : meters per second [m/s]
"""
import numpy as np

from typing import Optional


class Body:
  """
  A physical object whose state is propagated.

  Bodies are compared by identity: two bodies with the same name and the same
  state are still distinct registry entries.
  """
  def __init__(
    self,
    name : str,
    gp   : float = 0.0,
  ):
    """
    Initialize body

    Input:
    ------
      name : str
        Human-readable name.
      gp : float
        Gravitational parameter [m³/s²]. Only used by coupled n-body dynamics.

    Output:
    -------
      None
    """
    self.name = name
    self.gp   = gp

  def __repr__(self):
    return f"Body({self.name!r})"


class State:
  """
  Snapshot of a body's dynamical condition at a given time.

  The state vector is copied on construction and made read-only, and the time
  is a read-only property, so a State stored in a history cannot be altered
  through another reference.
  """
  def __init__(
    self,
    time   : float,
    vector : np.ndarray,
  ):
    vector = np.array(vector, dtype=float)
    if vector.ndim != 1:
      raise ValueError(f"State vector must be one-dimensional, got shape {vector.shape}")
    vector.flags.writeable = False

    self._time  = float(time)
    self.vector = vector

  @property
  def time(self) -> float:
    return self._time

  @property
  def pos_vec(self) -> np.ndarray:
    return self.vector[0:3]

  @property
  def vel_vec(self) -> np.ndarray:
    return self.vector[3:6]

  def is_finite(self) -> bool:
    return bool(np.isfinite(self.time) and np.all(np.isfinite(self.vector)))

  def copy(self) -> 'State':
    return State(self.time, self.vector)

  def with_time(
    self,
    time : float,
  ) -> 'State':
    return State(time, self.vector)

  def __len__(self):
    return len(self.vector)

  def __eq__(self, other):
    if not isinstance(other, State):
      return NotImplemented
    return self.time == other.time and np.array_equal(self.vector, other.vector)

  # Mutable-looking value type, not hashable
  __hash__ = None

  def __repr__(self):
    return f"State(time={self.time!r}, vector={self.vector.tolist()!r})"


def as_state(
  value : 'State | np.ndarray | list',
  time  : Optional[float] = None,
) -> State:
  """
  Coerce a State or array-like vector into a new State instance.

  Input:
  ------
    value : State | array-like
      Existing state (copied) or a plain state vector.
    time : float | None
      Time to attach to a plain vector. Ignored for State inputs.

  Output:
  -------
    state : State
      Independent State instance.
  """
  if isinstance(value, State):
    return value.copy()
  return State(np.nan if time is None else time, value)
