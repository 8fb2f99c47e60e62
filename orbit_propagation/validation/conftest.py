"""
Pytest Configuration and Fixtures
=================================

Shared fixtures and simple dynamics for all validation tests.
"""
import pytest
import numpy as np

from pathlib import Path

from orbit_propagation.model.body                       import Body
from orbit_propagation.model.constants                  import SOLARSYSTEMCONSTANTS
from orbit_propagation.model.dynamics                   import Acceleration, GeneralStateEquationsOfMotion
from orbit_propagation.propagation.numerical_propagator import NumericalPropagator


class ConstantVelocityEquationsOfMotion:
  """
  Force-free motion: pos(t) = pos_o + vel_o * (t - t_o). Integrated exactly.
  """
  state_dimension = 6

  def state_time_derivative(self, time, state_vec):
    state_dot_vec      = np.zeros(6)
    state_dot_vec[0:3] = state_vec[3:6]
    return state_dot_vec


class ThresholdDivergenceEquationsOfMotion(ConstantVelocityEquationsOfMotion):
  """
  Force-free motion that returns a non-finite derivative once pos-x exceeds a
  threshold.
  """
  def __init__(self, pos_x_max):
    self.pos_x_max = pos_x_max

  def state_time_derivative(self, time, state_vec):
    if state_vec[0] > self.pos_x_max:
      return np.full(6, np.nan)
    return super().state_time_derivative(time, state_vec)


@pytest.fixture(scope="session")
def project_root():
  """Return the project root directory."""
  return Path(__file__).parent.parent.parent


@pytest.fixture(scope="session")
def scenarios_path(project_root):
  """Return path to the example scenario files."""
  return project_root / "data" / "scenarios"


@pytest.fixture
def constant_velocity_eom():
  return ConstantVelocityEquationsOfMotion()


@pytest.fixture
def keplerian_eom():
  """Earth point-mass equations of motion."""
  return GeneralStateEquationsOfMotion(Acceleration(gp=SOLARSYSTEMCONSTANTS.EARTH.GP))


@pytest.fixture
def body_a():
  return Body("A")


@pytest.fixture
def body_b():
  return Body("B")


@pytest.fixture
def state_a():
  """Force-free state moving along +x."""
  return np.array([0.0, 0.0, 0.0, 10.0, 0.0, 0.0])


@pytest.fixture
def state_b():
  """Force-free state moving along +y."""
  return np.array([100.0, 0.0, 0.0, 0.0, 1.0, 0.0])


@pytest.fixture
def propagator(constant_velocity_eom):
  """Force-free propagator configured over [0, 25] s with 10 s output."""
  propagator = NumericalPropagator(constant_velocity_eom)
  propagator.set_propagation_interval_start(0.0)
  propagator.set_propagation_interval_end(25.0)
  propagator.set_fixed_output_interval(10.0)
  return propagator


@pytest.fixture
def leo_initial_state():
  """Typical LEO initial state for testing."""
  return np.array([
    7000.0e3,    # x [m]
    0.0,         # y [m]
    0.0,         # z [m]
    0.0,         # vx [m/s]
    7.5e3,       # vy [m/s]
    0.0,         # vz [m/s]
  ])
