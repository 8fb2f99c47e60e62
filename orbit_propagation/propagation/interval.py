"""
Propagation Interval
====================

Interval boundaries, fixed output sampling interval, and the sample time grid.
"""
import math

import numpy as np

from typing import Optional

from orbit_propagation.propagation.errors import InvalidConfiguration


class PropagationInterval:
  """
  Holds the propagation interval boundaries and the optional fixed output
  interval. Setters only store values; `validate` is called when a run starts.
  """
  def __init__(self):
    self.start                 : Optional[float] = None
    self.end                   : Optional[float] = None
    self.fixed_output_interval : Optional[float] = None

  @property
  def direction(self) -> float:
    """+1.0 for forward propagation, -1.0 for backward, 0.0 for an empty interval."""
    return float(np.sign(self.end - self.start))

  @property
  def duration(self) -> float:
    return abs(self.end - self.start)

  @property
  def has_fixed_output(self) -> bool:
    return self.fixed_output_interval is not None

  def validate(self) -> None:
    """
    Check that both boundaries are set and finite and that the fixed output
    interval, if set, is finite and strictly positive.

    Raises:
    -------
      InvalidConfiguration
        On the first violated condition.
    """
    for label, value in (('start', self.start), ('end', self.end)):
      if value is None:
        raise InvalidConfiguration(f"Propagation interval {label} is not set")
      if not math.isfinite(value):
        raise InvalidConfiguration(f"Propagation interval {label} must be finite, got {value}")

    if self.fixed_output_interval is not None:
      if not math.isfinite(self.fixed_output_interval) or self.fixed_output_interval <= 0.0:
        raise InvalidConfiguration(
          f"Fixed output interval must be finite and strictly positive, got {self.fixed_output_interval}"
        )

  def snapshot(self) -> 'PropagationInterval':
    """
    Return a copy whose values stay fixed for the duration of a run.
    """
    frozen = PropagationInterval()
    frozen.start                 = self.start
    frozen.end                   = self.end
    frozen.fixed_output_interval = self.fixed_output_interval
    return frozen

  def sample_times(self) -> np.ndarray:
    """
    Build the output time grid.

    Grid points are start + k * dt in the direction of the end boundary. The end
    boundary is always the last entry, whether or not it lies on the grid. An
    empty interval yields the single time [start]. Without a fixed output
    interval the grid is [start, end].

    Output:
    -------
      time_arr : np.ndarray
        Monotonic sample times [s].
    """
    if self.start == self.end:
      return np.array([self.start], dtype=float)
    if self.fixed_output_interval is None:
      return np.array([self.start, self.end], dtype=float)

    step      = self.fixed_output_interval * self.direction
    num_steps = int(math.floor(self.duration / self.fixed_output_interval))

    # Grid points within round-off of the end collapse onto it
    tol      = 1e-9 * max(self.fixed_output_interval, 1.0)
    time_arr = self.start + step * np.arange(num_steps + 1)
    time_arr = time_arr[self.direction * (self.end - time_arr) > tol]

    return np.append(time_arr, self.end)

  def describe(self) -> str:
    sampling_str = f"{self.fixed_output_interval} s" if self.fixed_output_interval is not None else "None"
    return "\n".join([
      f"  Interval",
      f"    Start           : {self.start} s",
      f"    End             : {self.end} s",
      f"    Fixed Output    : {sampling_str}",
    ])
