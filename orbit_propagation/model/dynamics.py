"""
Dynamics Module
===============

Acceleration models and equations of motion used by the numerical propagators.

Class Structure:
----------------
    GeneralStateEquationsOfMotion (ODE interface, single body)
    └── Acceleration (coordinator)
        └── TwoBodyGravity
            ├── point_mass()
            └── oblate_j2()

    NBodyEquationsOfMotion (ODE interface, coupled bodies)

Units:
------
- Position     : meters [m]
- Velocity     : meters per second [m/s]
- Acceleration : meters per second squared [m/s²]
- Time         : seconds [s]

Notes:
------
- All calculations performed in an inertial frame.
- The state vector layout of a single body is [pos, vel] (6 elements). Coupled
  n-body states stack those blocks body after body (6N elements).

Sources:
--------
- Vallado, D. A. (2013). Fundamentals of Astrodynamics and Applications (4th ed.). Microcosm Press.
"""
import numpy as np

from typing import Sequence


class TwoBodyGravity:
  """
  Two-body gravitational acceleration components
  Handles point mass and J2 oblateness
  """

  def __init__(
    self,
    gp      : float,
    j2      : float = 0.0,
    pos_ref : float = 0.0,
  ):
    """
    Initialize two-body gravity model

    Input:
    ------
      gp : float
        Gravitational parameter of central body [m³/s²]
      j2 : float
        J2 harmonic coefficient for oblateness
      pos_ref : float
        Reference radius for harmonic coefficients [m]

    Output:
    -------
      None
    """
    self.gp      = gp
    self.j2      = j2
    self.pos_ref = pos_ref

  def point_mass(
    self,
    pos_vec : np.ndarray,
  ) -> np.ndarray:
    """
    Two-body point mass gravity

    Input:
    ------
      pos_vec : np.ndarray
        Position vector [m]

    Output:
    -------
      acc_vec : np.ndarray
        Acceleration vector [m/s²]
    """
    pos_mag = np.linalg.norm(pos_vec)
    return -self.gp * pos_vec / pos_mag**3

  def oblate_j2(
    self,
    pos_vec : np.ndarray,
  ) -> np.ndarray:
    """
    J2 oblateness perturbation, assuming the inertial Z-axis is the body pole.

    Input:
    ------
      pos_vec : np.ndarray
        Position vector [m]

    Output:
    -------
      acc_vec : np.ndarray
        Acceleration vector [m/s²]
    """
    if self.j2 == 0.0:
      return np.zeros(3)

    pos_mag      = np.linalg.norm(pos_vec)
    pos_mag_pwr2 = pos_mag**2
    pos_mag_pwr5 = pos_mag_pwr2 * pos_mag_pwr2 * pos_mag

    factor = 1.5 * self.j2 * self.gp * self.pos_ref**2 / pos_mag_pwr5
    z_term = 5 * pos_vec[2]**2 / pos_mag_pwr2

    acc_vec    = np.zeros(3)
    acc_vec[0] = factor * pos_vec[0] * (z_term - 1)
    acc_vec[1] = factor * pos_vec[1] * (z_term - 1)
    acc_vec[2] = factor * pos_vec[2] * (z_term - 3)

    return acc_vec


class Acceleration:
  """
  Acceleration coordinator

  Computes total acceleration as:
    total = two_body_point_mass + two_body_oblate (J2)
  """

  def __init__(
    self,
    gp      : float,
    j2      : float = 0.0,
    pos_ref : float = 0.0,
  ):
    self.two_body = TwoBodyGravity(
      gp      = gp,
      j2      = j2,
      pos_ref = pos_ref,
    )

  def compute(
    self,
    time    : float,
    pos_vec : np.ndarray,
    vel_vec : np.ndarray,
  ) -> np.ndarray:
    """
    Compute total acceleration from all components

    Input:
    ------
      time : float
        Current time [s]
      pos_vec : np.ndarray
        Position vector [m]
      vel_vec : np.ndarray
        Velocity vector [m/s]

    Output:
    -------
      acc_vec : np.ndarray
        Total acceleration [m/s²]
    """
    acc_vec  = self.two_body.point_mass(pos_vec)
    acc_vec += self.two_body.oblate_j2(pos_vec)
    return acc_vec


class GeneralStateEquationsOfMotion:
  """
  General state equations of motion for a single body
  """
  state_dimension = 6

  def __init__(
    self,
    acceleration : Acceleration,
  ):
    self.acceleration = acceleration

  def state_time_derivative(
    self,
    time      : float,
    state_vec : np.ndarray,
  ) -> np.ndarray:
    """
    Compute state time derivative for ODE integration

    Input:
    ------
      time : float
        Current time [s]
      state_vec : np.ndarray
        Current state vector [pos, vel] [m, m/s]

    Output:
    -------
      state_dot_vec : np.ndarray
        Time derivative of state vector [vel, acc] [m/s, m/s²]
    """
    pos_vec = state_vec[0:3]
    vel_vec = state_vec[3:6]
    acc_vec = self.acceleration.compute(time, pos_vec, vel_vec)

    state_dot_vec      = np.zeros(6)
    state_dot_vec[0:3] = vel_vec
    state_dot_vec[3:6] = acc_vec

    return state_dot_vec


class NBodyEquationsOfMotion:
  """
  Mutual point-mass gravitation of N coupled bodies
  """

  def __init__(
    self,
    gp_list : Sequence[float],
  ):
    """
    Initialize n-body equations of motion

    Input:
    ------
      gp_list : sequence of float
        Gravitational parameter of each body [m³/s²], in stacking order.

    Output:
    -------
      None
    """
    self.gp_arr   = np.asarray(gp_list, dtype=float)
    self.n_bodies = len(self.gp_arr)

  def state_time_derivative(
    self,
    time      : float,
    state_vec : np.ndarray,
  ) -> np.ndarray:
    """
    Compute stacked state time derivative

    Input:
    ------
      time : float
        Current time [s]
      state_vec : np.ndarray
        Stacked state vector, 6 elements per body [m, m/s]

    Output:
    -------
      state_dot_vec : np.ndarray
        Stacked time derivative [m/s, m/s²]
    """
    state_mat = state_vec.reshape(self.n_bodies, 6)
    pos_mat   = state_mat[:, 0:3]

    # Pairwise separation vectors: rel_pos[i, j] = pos[j] - pos[i]
    rel_pos_arr = pos_mat[np.newaxis, :, :] - pos_mat[:, np.newaxis, :]
    dist_arr    = np.linalg.norm(rel_pos_arr, axis=2)
    np.fill_diagonal(dist_arr, np.inf)

    acc_mat = np.sum(
      self.gp_arr[np.newaxis, :, np.newaxis] * rel_pos_arr / dist_arr[:, :, np.newaxis]**3,
      axis = 1,
    )

    state_dot_mat         = np.zeros_like(state_mat)
    state_dot_mat[:, 0:3] = state_mat[:, 3:6]
    state_dot_mat[:, 3:6] = acc_mat

    return state_dot_mat.reshape(-1)
