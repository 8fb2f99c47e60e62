"""
Time Utilities
==============

Formatting helpers for propagation times.
"""
from orbit_propagation.model.constants import CONVERTER


def format_time_offset(
  seconds : float,
) -> str:
  """
  Format a signed time span in seconds as days, hours, minutes and seconds.

  Examples:
    12345.678 -> "+0d 03h 25m 45.678s"
   -98765.432 -> "-1d 03h 26m 05.432s"

  Input:
  ------
    seconds : float
      Time span in seconds. Negative for backward propagation.

  Output:
  -------
    str
      Formatted string like "+47d 21h 30m 20.357s".
  """
  sign    = '+' if seconds >= 0 else '-'
  abs_sec = abs(seconds)

  days, rem_sec    = divmod(abs_sec, CONVERTER.SEC_PER_DAY)
  hours, rem_sec   = divmod(rem_sec, CONVERTER.SEC_PER_HOUR)
  minutes, rem_sec = divmod(rem_sec, CONVERTER.SEC_PER_MIN)

  return f"{sign}{int(days)}d {int(hours):02d}h {int(minutes):02d}m {rem_sec:06.3f}s"
