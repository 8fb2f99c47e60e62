"""
Numerical Propagator Tests
==========================

Tests for the scipy-based propagators.

Tests:
------
TestKeplerianPropagation
  - test_roundtrip_circular_orbit_period   : circular orbit returns to start after one period, both directions
  - test_physical_laws_energy_conservation : specific energy conserved at every fixed-output sample

TestDivergence
  - test_divergent_body_keeps_partial_history : failed body keeps samples up to the failure, others complete
  - test_step_budget_exceeded                 : step budget turns into a divergence

TestNBodyPropagation
  - test_physical_laws_momentum_conservation : gp-weighted momentum conserved
  - test_coincident_bodies_fail_together     : singular coupling fails every coupled body
"""
import pytest
import numpy as np

from orbit_propagation.model.body                       import Body
from orbit_propagation.model.constants                  import SOLARSYSTEMCONSTANTS
from orbit_propagation.propagation.errors               import InvalidConfiguration, NoStateAvailable, PropagationDiverged
from orbit_propagation.propagation.interval             import PropagationInterval
from orbit_propagation.propagation.numerical_propagator import (
  NBodyPropagator,
  NumericalPropagator,
  propagate_state_numerical_integration,
)
from orbit_propagation.propagation.registry             import PropagationStatus
from orbit_propagation.validation.conftest              import ThresholdDivergenceEquationsOfMotion


def _specific_energy(state_vec):
  pos_mag = np.linalg.norm(state_vec[0:3])
  vel_mag = np.linalg.norm(state_vec[3:6])
  return 0.5 * vel_mag**2 - SOLARSYSTEMCONSTANTS.EARTH.GP / pos_mag


class TestKeplerianPropagation:
  """
  Tests for Keplerian (two-body) propagation through NumericalPropagator.
  """

  @pytest.mark.parametrize("backward", [False, True])
  def test_roundtrip_circular_orbit_period(self, keplerian_eom, leo_initial_state, backward):
    """
    Test that circular orbit returns to start after one period.
    """
    gp      = SOLARSYSTEMCONSTANTS.EARTH.GP
    sma     = leo_initial_state[0]
    vel_mag = np.sqrt(gp / sma)
    state_o = np.array([sma, 0.0, 0.0, 0.0, vel_mag, 0.0])
    period  = 2 * np.pi * np.sqrt(sma**3 / gp)

    satellite  = Body("SAT")
    propagator = NumericalPropagator(keplerian_eom)
    propagator.set_propagation_interval_start(period if backward else 0.0)
    propagator.set_propagation_interval_end(0.0 if backward else period)
    propagator.add_body(satellite)
    propagator.set_initial_state(satellite, state_o)
    propagator.propagate()

    state_f = propagator.get_final_state(satellite)
    assert state_f.time == (0.0 if backward else period)
    assert np.allclose(state_o[0:3], state_f.pos_vec, atol=1e-2)
    assert np.allclose(state_o[3:6], state_f.vel_vec, atol=1e-4)

  def test_physical_laws_energy_conservation(self, keplerian_eom):
    """
    Test energy conservation at the fixed-output samples of an elliptical orbit.
    """
    gp                = SOLARSYSTEMCONSTANTS.EARTH.GP
    periapsis_pos_mag = 7000e3
    apoapsis_pos_mag  = 14000e3
    sma               = (periapsis_pos_mag + apoapsis_pos_mag) / 2
    periapsis_vel_mag = np.sqrt(gp * (2/periapsis_pos_mag - 1/sma))
    state_o           = np.array([periapsis_pos_mag, 0.0, 0.0, 0.0, periapsis_vel_mag, 0.0])
    period            = 2 * np.pi * np.sqrt(sma**3 / gp)

    satellite  = Body("SAT")
    propagator = NumericalPropagator(keplerian_eom)
    propagator.set_propagation_interval_start(0.0)
    propagator.set_propagation_interval_end(period)
    propagator.set_fixed_output_interval(600.0)
    propagator.add_body(satellite)
    propagator.set_initial_state(satellite, state_o)
    propagator.propagate()

    history = propagator.get_propagation_history_at_fixed_output_intervals(satellite)
    assert len(history) == int(np.floor(period / 600.0)) + 2

    specific_energy_o = _specific_energy(state_o)
    for state in history.values():
      assert np.isclose(_specific_energy(state.vector), specific_energy_o, rtol=1e-9)

  def test_integration_statistics_in_workspace(self, keplerian_eom, leo_initial_state):
    satellite  = Body("SAT")
    propagator = NumericalPropagator(keplerian_eom, method='RK45', rtol=1e-9, atol=1e-6)
    propagator.set_propagation_interval_start(0.0)
    propagator.set_propagation_interval_end(600.0)
    propagator.add_body(satellite)
    propagator.set_initial_state(satellite, leo_initial_state)
    propagator.propagate()

    workspace = propagator.registry.get(satellite).workspace
    assert workspace['num_steps'] > 0
    assert workspace['nfev'] > workspace['num_steps']

  def test_get_propagation_result(self, propagator, body_a, state_a):
    propagator.add_body(body_a)
    propagator.set_initial_state(body_a, state_a)
    propagator.propagate()

    result = propagator.get_propagation_result(body_a)
    assert result['success']
    assert result['status'] is PropagationStatus.COMPLETED
    assert result['time'].tolist() == [0.0, 10.0, 20.0, 25.0]
    assert result['state'].shape == (6, 4)
    assert result['time_f'] == 25.0
    np.testing.assert_allclose(result['state_f'][0], 250.0, atol=1e-9)

  def test_unknown_method(self, constant_velocity_eom):
    with pytest.raises(InvalidConfiguration, match="Unknown integration method"):
      NumericalPropagator(constant_velocity_eom, method='Euler')
    with pytest.raises(InvalidConfiguration, match="Unknown integration method"):
      NBodyPropagator(method='Euler')

  @pytest.mark.parametrize("method", ['RK23', 'RK45', 'DOP853', 'Radau', 'BDF', 'LSODA'])
  def test_all_methods_reach_end(self, constant_velocity_eom, body_a, state_a, method):
    propagator = NumericalPropagator(constant_velocity_eom, method=method, rtol=1e-8, atol=1e-8)
    propagator.set_propagation_interval_start(0.0)
    propagator.set_propagation_interval_end(25.0)
    propagator.set_fixed_output_interval(10.0)
    propagator.add_body(body_a)
    propagator.set_initial_state(body_a, state_a)
    propagator.propagate()

    history = propagator.get_propagation_history_at_fixed_output_intervals(body_a)
    assert list(history.keys()) == [0.0, 10.0, 20.0, 25.0]
    np.testing.assert_allclose(propagator.get_final_state(body_a).pos_vec, [250.0, 0.0, 0.0], rtol=1e-6)


class TestDivergence:
  """
  Tests for divergence handling.
  """

  def test_divergent_body_keeps_partial_history(self, body_a, body_b, state_a, state_b):
    """
    Body A moves along +x at 10 m/s and its derivative turns non-finite past
    x = 120 m (t = 12 s). Body B never reaches the threshold.
    """
    propagator = NumericalPropagator(ThresholdDivergenceEquationsOfMotion(pos_x_max=120.0), max_step=1.0)
    propagator.set_propagation_interval_start(0.0)
    propagator.set_propagation_interval_end(25.0)
    propagator.set_fixed_output_interval(5.0)
    for body, state in ((body_a, state_a), (body_b, state_b)):
      propagator.add_body(body)
      propagator.set_initial_state(body, state)

    with pytest.raises(PropagationDiverged) as excinfo:
      propagator.propagate()

    error = excinfo.value
    assert isinstance(error, ArithmeticError)
    assert error.body is body_a
    assert list(error.failures) == [body_a]
    assert 10.0 <= error.time <= 12.0
    assert "diverged" in str(error)

    assert propagator.get_status(body_a) is PropagationStatus.FAILED
    assert list(propagator.get_propagation_history_at_fixed_output_intervals(body_a).keys()) == [0.0, 5.0, 10.0]
    with pytest.raises(NoStateAvailable):
      propagator.get_final_state(body_a)

    assert propagator.get_status(body_b) is PropagationStatus.COMPLETED
    assert list(propagator.get_propagation_history_at_fixed_output_intervals(body_b).keys()) == [0.0, 5.0, 10.0, 15.0, 20.0, 25.0]
    assert propagator.get_final_state(body_b).time == 25.0

  def test_step_budget_exceeded(self, constant_velocity_eom, body_a, state_a):
    propagator = NumericalPropagator(constant_velocity_eom, max_step=1.0, max_num_steps=3)
    propagator.set_propagation_interval_start(0.0)
    propagator.set_propagation_interval_end(25.0)
    propagator.add_body(body_a)
    propagator.set_initial_state(body_a, state_a)

    with pytest.raises(PropagationDiverged, match="step budget of 3 exceeded"):
      propagator.propagate()
    assert propagator.get_status(body_a) is PropagationStatus.FAILED
    assert propagator.registry.get(body_a).workspace['num_steps'] == 3

  def test_rerun_after_failure_recovers(self, constant_velocity_eom, body_a, state_a):
    propagator = NumericalPropagator(constant_velocity_eom, max_step=1.0, max_num_steps=3)
    propagator.set_propagation_interval_start(0.0)
    propagator.set_propagation_interval_end(25.0)
    propagator.add_body(body_a)
    propagator.set_initial_state(body_a, state_a)
    with pytest.raises(PropagationDiverged):
      propagator.propagate()

    propagator.max_num_steps = None
    propagator.propagate()
    assert propagator.get_status(body_a) is PropagationStatus.COMPLETED
    assert propagator.get_propagation_result(body_a)['message'] == 'completed'

  def test_non_finite_initial_derivative(self):
    """
    A derivative that is non-finite at the start fails before the first step.
    """
    interval = PropagationInterval()
    interval.start                 = 0.0
    interval.end                   = 10.0
    interval.fixed_output_interval = 5.0

    result = propagate_state_numerical_integration(
      initial_state = np.array([200.0, 0.0, 0.0, 1.0, 0.0, 0.0]),
      fun           = ThresholdDivergenceEquationsOfMotion(pos_x_max=100.0).state_time_derivative,
      interval      = interval,
    )

    assert not result['success']
    assert result['time'].tolist() == [0.0]
    assert result['time_f'] == 0.0
    assert result['num_steps'] == 0


class TestNBodyPropagation:
  """
  Tests for the coupled n-body propagator.
  """

  @staticmethod
  def _binary(gp=1.0e14, sep_half=1.0e7):
    """
    Two equal bodies on a circular orbit about their barycenter.
    """
    vel_mag   = np.sqrt(gp / (4 * sep_half))
    primary   = Body("PRIMARY",   gp=gp)
    secondary = Body("SECONDARY", gp=gp)
    state_primary   = np.array([ sep_half, 0.0, 0.0, 0.0,  vel_mag, 0.0])
    state_secondary = np.array([-sep_half, 0.0, 0.0, 0.0, -vel_mag, 0.0])
    return primary, secondary, state_primary, state_secondary

  def test_physical_laws_momentum_conservation(self):
    """
    Test that the gp-weighted momentum stays zero and the separation constant.
    """
    primary, secondary, state_primary, state_secondary = self._binary()

    propagator = NBodyPropagator()
    propagator.set_propagation_interval_start(0.0)
    propagator.set_propagation_interval_end(10000.0)
    propagator.set_fixed_output_interval(1000.0)
    for body, state in ((primary, state_primary), (secondary, state_secondary)):
      propagator.add_body(body)
      propagator.set_initial_state(body, state)
    propagator.propagate()

    history_primary   = propagator.get_propagation_history_at_fixed_output_intervals(primary)
    history_secondary = propagator.get_propagation_history_at_fixed_output_intervals(secondary)
    assert list(history_primary.keys()) == list(history_secondary.keys())
    assert len(history_primary) == 11

    momentum_scale = primary.gp * np.linalg.norm(state_primary[3:6])
    for time in history_primary:
      momentum = primary.gp * history_primary[time].vel_vec + secondary.gp * history_secondary[time].vel_vec
      assert np.linalg.norm(momentum) < 1e-8 * momentum_scale

      separation = np.linalg.norm(history_primary[time].pos_vec - history_secondary[time].pos_vec)
      assert np.isclose(separation, 2.0e7, rtol=1e-8)

  def test_coincident_bodies_fail_together(self):
    primary   = Body("PRIMARY",   gp=1.0e14)
    secondary = Body("SECONDARY", gp=1.0e14)
    state     = np.array([1.0e7, 0.0, 0.0, 0.0, 1.0, 0.0])

    propagator = NBodyPropagator()
    propagator.set_propagation_interval_start(0.0)
    propagator.set_propagation_interval_end(100.0)
    propagator.set_fixed_output_interval(10.0)
    for body in (primary, secondary):
      propagator.add_body(body)
      propagator.set_initial_state(body, state)

    with pytest.raises(PropagationDiverged) as excinfo:
      propagator.propagate()

    assert set(excinfo.value.failures) == {primary, secondary}
    for body in (primary, secondary):
      assert propagator.get_status(body) is PropagationStatus.FAILED
      assert list(propagator.get_propagation_history_at_fixed_output_intervals(body).keys()) == [0.0]

  def test_state_dimension_checked(self):
    body       = Body("BAD", gp=1.0)
    propagator = NBodyPropagator()
    propagator.set_propagation_interval_start(0.0)
    propagator.set_propagation_interval_end(10.0)
    propagator.add_body(body)
    propagator.set_initial_state(body, np.zeros(4))

    with pytest.raises(InvalidConfiguration, match="6 elements"):
      propagator.propagate()
    assert propagator.get_status(body) is PropagationStatus.NOT_STARTED

  def test_delegated_body_excluded_from_coupling(self, constant_velocity_eom):
    primary, secondary, state_primary, state_secondary = self._binary()
    probe       = Body("PROBE", gp=1.0e20)
    state_probe = np.array([0.0, 0.0, 0.0, 10.0, 0.0, 0.0])

    propagator = NBodyPropagator()
    propagator.set_propagation_interval_start(0.0)
    propagator.set_propagation_interval_end(1000.0)
    propagator.set_fixed_output_interval(250.0)
    for body, state in ((primary, state_primary), (secondary, state_secondary), (probe, state_probe)):
      propagator.add_body(body)
      propagator.set_initial_state(body, state)
    propagator.set_propagator(probe, NumericalPropagator(constant_velocity_eom))
    propagator.propagate()

    # The probe's large gp would dominate the binary if it were coupled
    momentum = primary.gp * propagator.get_final_state(primary).vel_vec + secondary.gp * propagator.get_final_state(secondary).vel_vec
    assert np.linalg.norm(momentum) < 1e-8 * primary.gp * np.linalg.norm(state_primary[3:6])

    np.testing.assert_allclose(propagator.get_final_state(probe).pos_vec, [10000.0, 0.0, 0.0], atol=1e-6)
    assert list(propagator.get_propagation_history_at_fixed_output_intervals(probe).keys()) == [0.0, 250.0, 500.0, 750.0, 1000.0]
    assert "coupled n-body" in propagator.describe()
