"""
Numerical Propagators
=====================

Concrete propagators built on the scipy ODE solvers.

- NumericalPropagator : each body integrated independently with its own
                        equations of motion
- NBodyPropagator     : all non-delegated bodies integrated together under
                        mutual point-mass gravitation
"""
import numpy as np

from typing          import Callable, Optional
from scipy.integrate import RK23, RK45, DOP853, Radau, BDF, LSODA

from orbit_propagation.model.body           import State
from orbit_propagation.model.dynamics       import NBodyEquationsOfMotion
from orbit_propagation.propagation.errors   import InvalidConfiguration
from orbit_propagation.propagation.interval import PropagationInterval
from orbit_propagation.propagation.registry import PropagatorDataContainer
from orbit_propagation.propagation.propagator import Propagator


SOLVER_METHODS = {
  'RK23'   : RK23,
  'RK45'   : RK45,
  'DOP853' : DOP853,
  'Radau'  : Radau,
  'BDF'    : BDF,
  'LSODA'  : LSODA,
}


class NonFiniteDerivative(ArithmeticError):
  def __init__(
    self,
    time : float,
  ):
    super().__init__(f"non-finite state derivative at t={time}")
    self.time = time


def _guard_finite(
  fun : Callable,
) -> Callable:
  def guarded(time, state_vec):
    state_dot_vec = fun(time, state_vec)
    if not np.all(np.isfinite(state_dot_vec)):
      raise NonFiniteDerivative(time)
    return state_dot_vec
  return guarded


def propagate_state_numerical_integration(
  initial_state : np.ndarray,
  fun           : Callable,
  interval      : PropagationInterval,
  method        : str             = 'DOP853',
  rtol          : float           = 1e-12,
  atol          : float           = 1e-12,
  max_step      : float           = np.inf,
  max_num_steps : Optional[int]   = 1000000,
) -> dict:
  """
  Integrate a state across the interval, sampling at the interval's output times.

  The solver is stepped until it reaches the interval end. Every output time
  crossed by a step is evaluated with the step's dense output; output times
  landed on exactly use the step state. The interval end is always the last
  sample.

  Input:
  ------
    initial_state : np.ndarray
      State vector at the interval start.
    fun : callable
      State time derivative, fun(time, state_vec) -> state_dot_vec.
    interval : PropagationInterval
      Validated, non-empty interval.
    method : str
      Solver name, one of SOLVER_METHODS.
    rtol : float
      Relative tolerance.
    atol : float
      Absolute tolerance.
    max_step : float
      Maximum step size [s].
    max_num_steps : int | None
      Step budget. None disables the budget.

  Output:
  -------
    result : dict
      Dictionary containing:
      - success : bool - Integration reached the interval end
      - message : str - Status message
      - time : np.ndarray - Sample times reached [s]
      - state : np.ndarray - Sampled states [n x N]
      - state_f : np.ndarray - Last good state vector
      - time_f : float - Time of the last good state [s]
      - num_steps : int - Accepted solver steps
      - nfev : int - Derivative evaluations
  """
  if method not in SOLVER_METHODS:
    raise InvalidConfiguration(f"Unknown integration method '{method}'. Options: {list(SOLVER_METHODS.keys())}")

  sample_times = interval.sample_times()
  direction    = interval.direction
  sample_list  = [interval.start]
  state_list   = [np.array(initial_state, dtype=float)]

  def _result(success, message, time_f, state_f, num_steps, nfev):
    return {
      'success'   : success,
      'message'   : message,
      'time'      : np.array(sample_list),
      'state'     : np.column_stack(state_list),
      'state_f'   : state_f,
      'time_f'    : time_f,
      'num_steps' : num_steps,
      'nfev'      : nfev,
    }

  with np.errstate(divide='ignore', over='ignore', invalid='ignore'):
    try:
      solver = SOLVER_METHODS[method](
        fun      = _guard_finite(fun),
        t0       = interval.start,
        y0       = state_list[0],
        t_bound  = interval.end,
        rtol     = rtol,
        atol     = atol,
        max_step = max_step,
      )
    except NonFiniteDerivative as error:
      return _result(False, str(error), interval.start, state_list[0], 0, 0)

    sample_idx = 1
    num_steps  = 0
    while solver.status == 'running':
      time_prev  = solver.t
      state_prev = solver.y.copy()

      try:
        message = solver.step()
      except NonFiniteDerivative as error:
        return _result(False, str(error), time_prev, state_prev, num_steps, solver.nfev)

      if solver.status == 'failed':
        return _result(False, f"solver failed after t={time_prev}: {message}", time_prev, state_prev, num_steps, solver.nfev)
      if not np.all(np.isfinite(solver.y)):
        return _result(False, f"non-finite state after t={time_prev}", time_prev, state_prev, num_steps, solver.nfev)
      num_steps += 1

      # Interior output times crossed or landed on by this step
      dense = None
      while sample_idx < len(sample_times) - 1 and direction * (solver.t - sample_times[sample_idx]) >= 0:
        time_sample = sample_times[sample_idx]
        if time_sample == solver.t:
          state_sample = solver.y.copy()
        else:
          if dense is None:
            try:
              dense = solver.dense_output()
            except NonFiniteDerivative as error:
              return _result(False, str(error), time_prev, state_prev, num_steps, solver.nfev)
          state_sample = dense(time_sample)
        if not np.all(np.isfinite(state_sample)):
          return _result(False, f"non-finite interpolated state at t={time_sample}", time_prev, state_prev, num_steps, solver.nfev)
        sample_list.append(float(time_sample))
        state_list.append(state_sample)
        sample_idx += 1

      if solver.status == 'running' and max_num_steps is not None and num_steps >= max_num_steps:
        return _result(False, f"step budget of {max_num_steps} exceeded at t={solver.t}", solver.t, solver.y.copy(), num_steps, solver.nfev)

  # The solver stops exactly on t_bound
  sample_list.append(interval.end)
  state_list.append(solver.y.copy())

  return _result(True, 'propagation successful', interval.end, solver.y.copy(), num_steps, solver.nfev)


class NumericalPropagator(Propagator):
  """
  Propagates each registered body independently by numerical integration.

  A failure of one body does not affect the others: their histories and final
  states are kept, and PropagationDiverged is raised once all bodies have been
  processed.
  """

  def __init__(
    self,
    equations_of_motion,
    method        : str           = 'DOP853',
    rtol          : float         = 1e-12,
    atol          : float         = 1e-12,
    max_step      : float         = np.inf,
    max_num_steps : Optional[int] = 1000000,
  ):
    """
    Initialize numerical propagator

    Input:
    ------
      equations_of_motion : object
        Provides state_time_derivative(time, state_vec), e.g.
        GeneralStateEquationsOfMotion.
      method : str
        Integration method (default: 'DOP853').
      rtol : float
        Relative tolerance for integration.
      atol : float
        Absolute tolerance for integration.
      max_step : float
        Maximum step size [s].
      max_num_steps : int | None
        Step budget per body. None disables the budget.

    Output:
    -------
      None
    """
    super().__init__()
    if method not in SOLVER_METHODS:
      raise InvalidConfiguration(f"Unknown integration method '{method}'. Options: {list(SOLVER_METHODS.keys())}")
    self.equations_of_motion = equations_of_motion
    self.method              = method
    self.rtol                = rtol
    self.atol                = atol
    self.max_step            = max_step
    self.max_num_steps       = max_num_steps

  def propagate(self) -> None:
    interval = self._prepare_run()
    try:
      for container in self.registry:
        self._begin_body(container)
        if interval.start == interval.end:
          self._complete_empty_interval(container, interval)
        elif container.is_delegated:
          self._delegate(container, interval)
        else:
          self._advance(container, interval)
    finally:
      self._end_run()

    self._raise_failures()

  def _validate_initial_state(self, body, initial_state, is_delegated) -> None:
    super()._validate_initial_state(body, initial_state, is_delegated)
    state_dimension = getattr(self.equations_of_motion, 'state_dimension', None)
    if not is_delegated and state_dimension is not None and len(initial_state) != state_dimension:
      raise InvalidConfiguration(
        f"Initial state of {body!r} must have {state_dimension} elements, got {len(initial_state)}",
        body,
      )

  def _advance(
    self,
    container : PropagatorDataContainer,
    interval  : PropagationInterval,
  ) -> None:
    state_o = self._start_state(container, interval)

    result = propagate_state_numerical_integration(
      initial_state = state_o.vector,
      fun           = self.equations_of_motion.state_time_derivative,
      interval      = interval,
      method        = self.method,
      rtol          = self.rtol,
      atol          = self.atol,
      max_step      = self.max_step,
      max_num_steps = self.max_num_steps,
    )

    container.workspace['num_steps'] = result['num_steps']
    container.workspace['nfev']      = result['nfev']

    for idx, time in enumerate(result['time']):
      self._record_sample(container, interval, State(time, result['state'][:, idx]))

    if result['success']:
      self._complete_body(container, State(interval.end, result['state_f']))
    else:
      self._fail_body(
        container,
        f"Propagation of {container.body!r} diverged: {result['message']}",
        result['time_f'],
      )

  def describe(self) -> str:
    return "\n".join([
      super().describe(),
      f"  Integration",
      f"    Method          : {self.method}",
      f"    Tolerances      : rtol={self.rtol}, atol={self.atol}",
    ])


class NBodyPropagator(Propagator):
  """
  Propagates all non-delegated bodies as one coupled system under mutual
  point-mass gravitation. Each body contributes its `gp` and a 6-element
  [pos, vel] state. Divergence of the coupled system fails every coupled body.
  """

  def __init__(
    self,
    method        : str           = 'DOP853',
    rtol          : float         = 1e-12,
    atol          : float         = 1e-12,
    max_step      : float         = np.inf,
    max_num_steps : Optional[int] = 1000000,
  ):
    super().__init__()
    if method not in SOLVER_METHODS:
      raise InvalidConfiguration(f"Unknown integration method '{method}'. Options: {list(SOLVER_METHODS.keys())}")
    self.method        = method
    self.rtol          = rtol
    self.atol          = atol
    self.max_step      = max_step
    self.max_num_steps = max_num_steps

  def propagate(self) -> None:
    interval = self._prepare_run()
    try:
      coupled = []
      for container in self.registry:
        self._begin_body(container)
        if interval.start == interval.end:
          self._complete_empty_interval(container, interval)
        elif container.is_delegated:
          self._delegate(container, interval)
        else:
          coupled.append(container)

      if coupled:
        self._advance_coupled(coupled, interval)
    finally:
      self._end_run()

    self._raise_failures()

  def _validate_initial_state(self, body, initial_state, is_delegated) -> None:
    super()._validate_initial_state(body, initial_state, is_delegated)
    if not is_delegated and len(initial_state) != 6:
      raise InvalidConfiguration(
        f"Initial state of {body!r} must have 6 elements for n-body propagation, got {len(initial_state)}",
        body,
      )

  def _advance_coupled(
    self,
    coupled  : list[PropagatorDataContainer],
    interval : PropagationInterval,
  ) -> None:
    eom     = NBodyEquationsOfMotion([container.body.gp for container in coupled])
    state_o = np.concatenate([self._start_state(container, interval).vector for container in coupled])

    result = propagate_state_numerical_integration(
      initial_state = state_o,
      fun           = eom.state_time_derivative,
      interval      = interval,
      method        = self.method,
      rtol          = self.rtol,
      atol          = self.atol,
      max_step      = self.max_step,
      max_num_steps = self.max_num_steps,
    )

    for body_idx, container in enumerate(coupled):
      rows = slice(6 * body_idx, 6 * body_idx + 6)
      container.workspace['num_steps'] = result['num_steps']
      container.workspace['nfev']      = result['nfev']

      for idx, time in enumerate(result['time']):
        self._record_sample(container, interval, State(time, result['state'][rows, idx]))

      if result['success']:
        self._complete_body(container, State(interval.end, result['state_f'][rows]))
      else:
        names = ', '.join(repr(other.body) for other in coupled)
        self._fail_body(
          container,
          f"Coupled propagation of {names} diverged: {result['message']}",
          result['time_f'],
        )

  def describe(self) -> str:
    return "\n".join([
      super().describe(),
      f"  Integration",
      f"    Method          : {self.method} (coupled n-body)",
      f"    Tolerances      : rtol={self.rtol}, atol={self.atol}",
    ])
