import numpy as np


def _format_vec(
  vec : np.ndarray,
) -> str:
  return "  ".join(f"{value:>19.12e}" for value in vec)


def print_results_summary(
  results : dict,
) -> None:
  """
  Print a summary of the propagation results.

  Input:
  ------
    results : dict
      Mapping of body name -> result dict from Propagator.get_propagation_result.
  """
  print("\nResults Summary")

  for name, result in results.items():
    print(f"  {name}")
    print(f"    Status  : {result['status'].value}")
    print(f"    Samples : {len(result['time'])}")

    if not result['success']:
      print(f"    Message : {result['message']}")
      continue

    state_f = result['state_f']
    print(f"    Final State")
    print(f"      Time     : {result['time_f']:.6f} s")
    if len(state_f) == 6:
      print(f"      Position : {_format_vec(state_f[0:3])} m")
      print(f"      Velocity : {_format_vec(state_f[3:6])} m/s")
    else:
      print(f"      State    : {_format_vec(state_f)}")
