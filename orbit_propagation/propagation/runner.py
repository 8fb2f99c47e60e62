"""
Propagation Runner
==================

Builds propagators from a configuration and runs them with progress output.
"""
import time as timer

from types import SimpleNamespace

from orbit_propagation.model.body                     import Body
from orbit_propagation.model.constants                import SOLARSYSTEMCONSTANTS
from orbit_propagation.model.dynamics                 import Acceleration, GeneralStateEquationsOfMotion
from orbit_propagation.propagation.errors             import PropagationDiverged
from orbit_propagation.propagation.numerical_propagator import NBodyPropagator, NumericalPropagator
from orbit_propagation.propagation.propagator         import Propagator
from orbit_propagation.utility.time_helper            import format_time_offset


def build_equations_of_motion(
  config : SimpleNamespace,
) -> GeneralStateEquationsOfMotion:
  """
  Create the central-body equations of motion described by the configuration.
  """
  central_body = SOLARSYSTEMCONSTANTS.NAME_TO_BODY[config.central_body]
  j2_val       = central_body.J2 if 'J2' in config.gravity_harmonics_list else 0.0

  acceleration = Acceleration(
    gp      = central_body.GP,
    j2      = j2_val,
    pos_ref = central_body.RADIUS.EQUATOR,
  )
  return GeneralStateEquationsOfMotion(acceleration)


def build_propagator(
  config : SimpleNamespace,
) -> tuple[Propagator, dict[str, Body]]:
  """
  Configure a propagator for every body in the configuration.

  Bodies with their own integrator settings are delegated to a separate
  NumericalPropagator using the same central-body dynamics.

  Input:
  ------
    config : SimpleNamespace
      Configuration from build_config.

  Output:
  -------
    propagator : Propagator
      Configured top-level propagator.
    bodies : dict
      Mapping of body name -> Body.
  """
  eom = build_equations_of_motion(config)

  if config.dynamics_model == 'n_body':
    propagator = NBodyPropagator(
      method   = config.integrator.method,
      rtol     = config.integrator.rtol,
      atol     = config.integrator.atol,
      max_step = config.integrator.max_step,
    )
  else:
    propagator = NumericalPropagator(
      eom,
      method   = config.integrator.method,
      rtol     = config.integrator.rtol,
      atol     = config.integrator.atol,
      max_step = config.integrator.max_step,
    )

  propagator.set_propagation_interval_start(config.time_o)
  propagator.set_propagation_interval_end(config.time_f)
  propagator.set_fixed_output_interval(config.fixed_output_interval)

  bodies = {}
  for body_config in config.bodies:
    body = Body(body_config.name, gp=body_config.gp)
    propagator.add_body(body)
    propagator.set_initial_state(body, body_config.state)

    if body_config.integrator is not None:
      propagator.set_propagator(
        body,
        NumericalPropagator(
          eom,
          method   = body_config.integrator.method,
          rtol     = body_config.integrator.rtol,
          atol     = body_config.integrator.atol,
          max_step = body_config.integrator.max_step,
        ),
      )
    bodies[body_config.name] = body

  return propagator, bodies


def run_propagation(
  propagator : Propagator,
) -> dict:
  """
  Run a configured propagator and collect per-body results.

  Divergence is reported and does not stop the collection: bodies that
  completed keep their results. Configuration errors propagate.

  Output:
  -------
    results : dict
      Mapping of body name -> result dict from get_propagation_result.
  """
  print("\nPropagation")
  for line in propagator.describe().splitlines():
    print(f"  {line}")

  duration = propagator.get_propagation_interval_end() - propagator.get_propagation_interval_start()
  print(f"    Duration          : {format_time_offset(duration)}")

  print("\n  Compute")
  print("    Numerical Integration Running ... ", end='', flush=True)
  time_start = timer.perf_counter()
  try:
    propagator.propagate()
    print("Complete")
  except PropagationDiverged as error:
    print("Failed")
    for body, message in error.failures.items():
      print(f"    [ERROR] {body.name} : {message}")
  print(f"    Elapsed           : {timer.perf_counter() - time_start:.3f} s")

  return {body.name: propagator.get_propagation_result(body) for body in propagator.get_bodies()}
