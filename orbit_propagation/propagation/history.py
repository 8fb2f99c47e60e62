"""
Propagation History
===================

Time-ordered record of sampled states for one body across one run.
"""
import numpy as np

from typing import Iterator

from orbit_propagation.model.body import State


class PropagationHistory:
  """
  Mapping of sample time -> State.

  Entries are kept in the order they were recorded, which follows the
  propagation direction. Recording a time that is already present replaces the
  stored state instead of adding a duplicate key.
  """
  def __init__(self):
    self._states : dict[float, State] = {}

  def record(
    self,
    state : State,
  ) -> None:
    """
    Store an independent copy of the state under its own time.
    """
    self._states[float(state.time)] = state.copy()

  def clear(self) -> None:
    self._states.clear()

  def times(self) -> list[float]:
    return list(self._states.keys())

  def states(self) -> list[State]:
    return list(self._states.values())

  def last(self) -> State:
    if not self._states:
      raise IndexError("Propagation history is empty")
    return next(reversed(self._states.values()))

  def as_dict(self) -> dict[float, State]:
    return {time: state.copy() for time, state in self._states.items()}

  def as_arrays(self) -> tuple[np.ndarray, np.ndarray]:
    """
    Convert the history to arrays.

    Output:
    -------
      time_arr : np.ndarray
        Sample times [s], shape (N,).
      state_arr : np.ndarray
        States, shape (n, N) with n the state dimension.
    """
    if not self._states:
      return np.zeros(0), np.zeros((0, 0))
    time_arr  = np.array(self.times())
    state_arr = np.column_stack([state.vector for state in self._states.values()])
    return time_arr, state_arr

  def __len__(self):
    return len(self._states)

  def __contains__(self, time):
    return time in self._states

  def __iter__(self) -> Iterator[float]:
    return iter(self._states)

  def __getitem__(self, time) -> State:
    return self._states[time]
