"""
Propagator
==========

Base class for all propagators.

A propagator advances the state of its registered bodies from the interval start
to the interval end and records their history at fixed output intervals.
Propagation of a single body can be delegated to another propagator.

Usage Example:
--------------
  propagator = NumericalPropagator(eom)
  propagator.set_propagation_interval_start(0.0)
  propagator.set_propagation_interval_end(5400.0)
  propagator.set_fixed_output_interval(60.0)

  propagator.add_body(satellite)
  propagator.set_initial_state(satellite, initial_state)
  propagator.propagate()

  state_f = propagator.get_final_state(satellite)
  history = propagator.get_propagation_history_at_fixed_output_intervals(satellite)
"""
import numpy as np

from abc    import ABC, abstractmethod
from typing import Optional

from orbit_propagation.model.body          import Body, State, as_state
from orbit_propagation.propagation.errors  import (
  InvalidConfiguration,
  NoStateAvailable,
  PropagationDiverged,
)
from orbit_propagation.propagation.interval import PropagationInterval
from orbit_propagation.propagation.registry import (
  BodyHandle,
  BodyRegistry,
  PropagationStatus,
  PropagatorDataContainer,
)


class Propagator(ABC):
  """
  Abstract propagator.

  Concrete subclasses implement `propagate`, using the protected helpers below
  to prepare the run, delegate bodies, record samples, and report the outcome.
  """

  def __init__(self):
    self.interval     = PropagationInterval()
    self.registry     = BodyRegistry()
    self._in_progress = False

  # ---------------------------------------------------------------------------
  # Interval configuration
  # ---------------------------------------------------------------------------

  def set_propagation_interval_start(
    self,
    propagation_interval_start : float,
  ) -> None:
    self._check_not_in_progress()
    self.interval.start = float(propagation_interval_start)

  def set_propagation_interval_end(
    self,
    propagation_interval_end : float,
  ) -> None:
    self._check_not_in_progress()
    self.interval.end = float(propagation_interval_end)

  def set_fixed_output_interval(
    self,
    fixed_output_interval : Optional[float],
  ) -> None:
    """
    Set the interval at which states are stored in the propagation history.
    None disables fixed output. The value is checked when `propagate` runs.
    """
    self._check_not_in_progress()
    self.interval.fixed_output_interval = None if fixed_output_interval is None else float(fixed_output_interval)

  def get_propagation_interval_start(self) -> Optional[float]:
    return self.interval.start

  def get_propagation_interval_end(self) -> Optional[float]:
    return self.interval.end

  def get_fixed_output_interval(self) -> Optional[float]:
    return self.interval.fixed_output_interval

  # ---------------------------------------------------------------------------
  # Body registry
  # ---------------------------------------------------------------------------

  def add_body(
    self,
    body : Body,
  ) -> BodyHandle:
    """
    Register a body to be propagated. Adding a registered body again keeps its
    initial state and delegated propagator.

    Output:
    -------
      handle : BodyHandle
        Stable handle of the body in this propagator's registry.
    """
    self._check_not_in_progress()
    return self.registry.add(body).handle

  def set_propagator(
    self,
    body       : Body,
    propagator : Optional['Propagator'],
  ) -> None:
    """
    Delegate propagation of a registered body to another propagator. The
    propagator is referenced, not owned. None restores own stepping.

    Raises:
    -------
      UnknownBody
        If the body is not registered.
      InvalidConfiguration
        If the propagator is this propagator or not a Propagator.
    """
    self._check_not_in_progress()
    container = self.registry.get(body)

    if propagator is self:
      raise InvalidConfiguration(f"{self.__class__.__name__} cannot delegate {body!r} to itself", body)
    if propagator is not None and not isinstance(propagator, Propagator):
      raise InvalidConfiguration(
        f"Delegated propagator for {body!r} must be a Propagator, got {propagator.__class__.__name__}",
        body,
      )

    container.propagator = propagator

  def set_initial_state(
    self,
    body          : Body,
    initial_state : 'State | np.ndarray',
  ) -> None:
    """
    Assign the initial state of a registered body, replacing any previous one.
    The state is copied; its time is replaced by the interval start at run time.

    Raises:
    -------
      UnknownBody
        If the body is not registered.
    """
    self._check_not_in_progress()
    container = self.registry.get(body)
    container.initial_state = as_state(initial_state)

  def get_bodies(self) -> list[Body]:
    return self.registry.bodies()

  def has_body(
    self,
    body : Body,
  ) -> bool:
    return body in self.registry

  def get_handle(
    self,
    body : Body,
  ) -> BodyHandle:
    return self.registry.handle_of(body)

  def get_status(
    self,
    body : Body,
  ) -> PropagationStatus:
    return self.registry.get(body).status

  def get_initial_state(
    self,
    body : Body,
  ) -> Optional[State]:
    initial_state = self.registry.get(body).initial_state
    return None if initial_state is None else initial_state.copy()

  # ---------------------------------------------------------------------------
  # History recorder
  # ---------------------------------------------------------------------------

  def get_final_state(
    self,
    body : Body,
  ) -> State:
    """
    Return the state at the interval end from the most recent run.

    Raises:
    -------
      UnknownBody
        If the body is not registered.
      NoStateAvailable
        If the body has no completed propagation.
    """
    container = self.registry.get(body)
    if container.final_state is None:
      if container.status is PropagationStatus.FAILED:
        raise NoStateAvailable(f"Propagation of {body!r} failed: {container.failure}", body)
      raise NoStateAvailable(f"{body!r} has not been propagated", body)
    return container.final_state.copy()

  def get_propagation_history_at_fixed_output_intervals(
    self,
    body : Body,
  ) -> dict[float, State]:
    """
    Return the states recorded at fixed output intervals during the most recent
    run, keyed by time and ordered in the propagation direction. Empty if no
    fixed output interval was set or the body was never propagated.

    Raises:
    -------
      UnknownBody
        If the body is not registered.
    """
    return self.registry.get(body).history.as_dict()

  def get_propagation_result(
    self,
    body : Body,
  ) -> dict:
    """
    Summarize the most recent run of a body.

    Output:
    -------
      result : dict
        Dictionary containing:
        - success : bool - True if the body completed
        - message : str - Status or failure message
        - status : PropagationStatus
        - time : np.ndarray - History times [s]
        - state : np.ndarray - History states [n x N]
        - state_f : np.ndarray | None - Final state vector
        - time_f : float | None - Final time [s]
    """
    container        = self.registry.get(body)
    time_arr, states = container.history.as_arrays()
    completed        = container.status is PropagationStatus.COMPLETED

    return {
      'success' : completed,
      'message' : container.failure if container.failure is not None else container.status.value,
      'status'  : container.status,
      'time'    : time_arr,
      'state'   : states,
      'state_f' : container.final_state.vector if container.final_state is not None else None,
      'time_f'  : container.final_state.time if container.final_state is not None else None,
    }

  # ---------------------------------------------------------------------------
  # Propagation
  # ---------------------------------------------------------------------------

  @abstractmethod
  def propagate(self) -> None:
    """
    Advance all registered bodies from the interval start to the interval end.

    Implementations must call `_prepare_run` before any stepping and `_end_run`
    when done, record samples through `_record_sample`, and finish every body
    through `_complete_body` or `_fail_body`.
    """

  def _check_not_in_progress(self) -> None:
    if self._in_progress:
      raise InvalidConfiguration(f"{self.__class__.__name__} cannot be reconfigured while propagation is in progress")

  def _prepare_run(self) -> PropagationInterval:
    """
    Validate the configuration, then discard the results of the previous run.

    Nothing is modified if validation fails.

    Output:
    -------
      interval : PropagationInterval
        Frozen copy of the interval configuration for this run.

    Raises:
    -------
      InvalidConfiguration
        If the interval is malformed, an initial state is missing or unusable
        anywhere in the delegation tree, or delegation forms a cycle.
    """
    if self._in_progress:
      raise InvalidConfiguration(f"{self.__class__.__name__} is already propagating; delegation cycle or re-entrant call")

    self.interval.validate()
    self._validate_configuration()

    for container in self.registry:
      container.reset_run()

    self._in_progress = True
    return self.interval.snapshot()

  def _validate_configuration(
    self,
    path     : tuple = (),
    supplied : Optional[tuple[Body, State]] = None,
  ) -> None:
    """
    Check the initial state of every body, then every delegate down the
    delegation tree, without modifying anything.

    Input:
    ------
      path : tuple
        Propagators that delegate (directly or indirectly) to this one.
      supplied : (Body, State) | None
        Body an owner will hand to this propagator, with the initial state the
        owner will set for it.

    Raises:
    -------
      InvalidConfiguration
        On the first invalid initial state or delegation cycle.
    """
    path = path + (self,)

    for container in self.registry:
      initial_state = container.initial_state
      if supplied is not None and container.body is supplied[0]:
        initial_state = supplied[1]
      self._validate_initial_state(container.body, initial_state, container.is_delegated)

      if container.is_delegated:
        delegate = container.propagator
        if delegate._in_progress or any(delegate is other for other in path):
          raise InvalidConfiguration(
            f"Delegated propagator for {container.body!r} is already propagating or forms a delegation cycle",
            container.body,
          )
        delegate._validate_configuration(path, (container.body, initial_state))

    if supplied is not None and supplied[0] not in self.registry:
      self._validate_initial_state(supplied[0], supplied[1], False)

  def _validate_initial_state(
    self,
    body          : Body,
    initial_state : Optional[State],
    is_delegated  : bool,
  ) -> None:
    """
    Reject an initial state this propagator cannot start from. Subclasses add
    checks for states they step themselves (is_delegated False).
    """
    if initial_state is None:
      raise InvalidConfiguration(f"Initial state of {body!r} is not set", body)
    if initial_state.vector.size == 0 or not np.all(np.isfinite(initial_state.vector)):
      raise InvalidConfiguration(f"Initial state of {body!r} must be non-empty and finite", body)

  def _end_run(self) -> None:
    """
    Leave the in-progress state. A body still advancing was cut off by an
    exception and is marked failed.
    """
    for container in self.registry:
      if container.status is PropagationStatus.ADVANCING:
        time_arr = container.history.times()
        self._fail_body(
          container,
          f"Propagation of {container.body!r} was interrupted",
          time_arr[-1] if time_arr else None,
        )
    self._in_progress = False

  def _start_state(
    self,
    container : PropagatorDataContainer,
    interval  : PropagationInterval,
  ) -> State:
    return container.initial_state.with_time(interval.start)

  def _begin_body(
    self,
    container : PropagatorDataContainer,
  ) -> None:
    container.status = PropagationStatus.ADVANCING

  def _record_sample(
    self,
    container : PropagatorDataContainer,
    interval  : PropagationInterval,
    state     : State,
  ) -> None:
    if interval.has_fixed_output:
      container.history.record(state)

  def _complete_body(
    self,
    container : PropagatorDataContainer,
    state     : State,
  ) -> None:
    container.final_state = state.copy()
    container.status      = PropagationStatus.COMPLETED

  def _fail_body(
    self,
    container : PropagatorDataContainer,
    message   : str,
    time      : Optional[float] = None,
  ) -> None:
    container.status       = PropagationStatus.FAILED
    container.failure      = message
    container.failure_time = time

  def _complete_empty_interval(
    self,
    container : PropagatorDataContainer,
    interval  : PropagationInterval,
  ) -> None:
    """
    Start equals end: the initial state is the only sample and the final state.
    """
    state_o = self._start_state(container, interval)
    self._record_sample(container, interval, state_o)
    self._complete_body(container, state_o)

  def _delegate(
    self,
    container : PropagatorDataContainer,
    interval  : PropagationInterval,
  ) -> None:
    """
    Propagate one body with its delegated propagator and copy the outcome into
    this propagator's records. The delegate is configured with this run's
    interval and fixed output interval.
    """
    delegate = container.propagator
    body     = container.body

    delegate.set_propagation_interval_start(interval.start)
    delegate.set_propagation_interval_end(interval.end)
    delegate.set_fixed_output_interval(interval.fixed_output_interval)
    delegate.add_body(body)
    delegate.set_initial_state(body, self._start_state(container, interval))

    failure = None
    try:
      delegate.propagate()
    except PropagationDiverged as error:
      failure = error.failures.get(body, error.message)

    for state in delegate.get_propagation_history_at_fixed_output_intervals(body).values():
      self._record_sample(container, interval, state)

    if delegate.get_status(body) is PropagationStatus.COMPLETED:
      self._complete_body(container, delegate.get_final_state(body))
    else:
      time_arr = container.history.times()
      self._fail_body(
        container,
        failure if failure is not None else f"Delegated propagation of {body!r} did not complete",
        time_arr[-1] if time_arr else None,
      )

  def _raise_failures(self) -> None:
    """
    Raise PropagationDiverged if any body failed in the run that just ended.
    Bodies that completed keep their results.
    """
    failed = [container for container in self.registry if container.status is PropagationStatus.FAILED]
    if not failed:
      return

    failures = {container.body: container.failure for container in failed}
    if len(failed) == 1:
      message = failed[0].failure
    else:
      message = f"Propagation failed for {len(failed)} bodies: " + "; ".join(container.failure for container in failed)

    raise PropagationDiverged(
      message,
      body     = failed[0].body,
      time     = failed[0].failure_time,
      failures = failures,
    )

  # ---------------------------------------------------------------------------
  # Diagnostics
  # ---------------------------------------------------------------------------

  def describe(self) -> str:
    """
    Human-readable summary of the configuration and body status.
    """
    lines = [
      f"{self.__class__.__name__}",
      self.interval.describe(),
      f"  Bodies            : {len(self.registry)}",
    ]
    for container in self.registry:
      stepping = f"delegated to {container.propagator.__class__.__name__}" if container.is_delegated else "own stepping"
      lines.append(f"    [{container.handle}] {container.body!r} : {container.status.value}, {stepping}")
    return "\n".join(lines)

  def __str__(self):
    return self.describe()
