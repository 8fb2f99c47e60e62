"""
Body Registry
=============

Per-body propagation data, looked up by body identity through integer handles.
"""
from enum    import Enum
from typing  import Any, Iterator, Optional

from orbit_propagation.model.body               import Body, State
from orbit_propagation.propagation.errors       import UnknownBody
from orbit_propagation.propagation.history      import PropagationHistory


BodyHandle = int


class PropagationStatus(Enum):
  NOT_STARTED = 'not_started'
  ADVANCING   = 'advancing'
  COMPLETED   = 'completed'
  FAILED      = 'failed'


class PropagatorDataContainer:
  """
  Data the registry keeps for one body.

  Attributes:
  -----------
    handle : BodyHandle
      Stable index of the body within its registry.
    body : Body
      The registered body (referenced, not owned).
    initial_state : State | None
      Registry-owned copy of the caller's initial state.
    propagator : Propagator | None
      Delegated propagator. None means the owner steps the body itself.
    workspace : dict
      Scratch space for the concrete propagation algorithm between steps.
    status : PropagationStatus
      Progress of the most recent run.
    final_state : State | None
      Outcome of the most recent completed run.
    history : PropagationHistory
      States sampled at fixed output intervals during the most recent run.
    failure : str | None
      Failure message of the most recent run, if it failed.
    failure_time : float | None
      Time of the last good state before the failure [s].
  """
  def __init__(
    self,
    handle : BodyHandle,
    body   : Body,
  ):
    self.handle        = handle
    self.body          = body
    self.initial_state : Optional[State] = None
    self.propagator    : Any             = None
    self.workspace     : dict            = {}
    self.status        = PropagationStatus.NOT_STARTED
    self.final_state   : Optional[State] = None
    self.history       = PropagationHistory()
    self.failure       : Optional[str]   = None
    self.failure_time  : Optional[float] = None

  @property
  def is_delegated(self) -> bool:
    return self.propagator is not None

  def reset_run(self) -> None:
    """
    Drop everything produced by a previous run.
    """
    self.workspace   = {}
    self.status      = PropagationStatus.NOT_STARTED
    self.final_state = None
    self.failure      = None
    self.failure_time = None
    self.history.clear()


class BodyRegistry:
  """
  Arena of PropagatorDataContainer entries.

  Containers live in a list indexed by handle; a second map resolves a body's
  identity to its handle. The container keeps a reference to its body, so the
  identity key stays valid for the lifetime of the registry.
  """
  def __init__(self):
    self._containers : list[PropagatorDataContainer] = []
    self._handles    : dict[int, BodyHandle]         = {}

  def add(
    self,
    body : Body,
  ) -> PropagatorDataContainer:
    """
    Register a body, or return its existing container unchanged.
    """
    handle = self._handles.get(id(body))
    if handle is not None:
      return self._containers[handle]

    handle    = len(self._containers)
    container = PropagatorDataContainer(handle, body)
    self._containers.append(container)
    self._handles[id(body)] = handle
    return container

  def handle_of(
    self,
    body : Body,
  ) -> BodyHandle:
    handle = self._handles.get(id(body))
    if handle is None:
      raise UnknownBody(body)
    return handle

  def get(
    self,
    body : Body,
  ) -> PropagatorDataContainer:
    return self._containers[self.handle_of(body)]

  def __getitem__(
    self,
    handle : BodyHandle,
  ) -> PropagatorDataContainer:
    return self._containers[handle]

  def __contains__(self, body):
    return id(body) in self._handles

  def __iter__(self) -> Iterator[PropagatorDataContainer]:
    return iter(self._containers)

  def __len__(self):
    return len(self._containers)

  def bodies(self) -> list[Body]:
    return [container.body for container in self._containers]
