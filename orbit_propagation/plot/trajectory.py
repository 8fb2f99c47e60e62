import matplotlib.pyplot as plt
import numpy             as np

from pathlib           import Path
from matplotlib.figure import Figure


def get_equal_limits(
  ax,
) -> tuple[float, float]:
  """
  Common axis limits for a 3D axis so that all axes share the same scale.
  """
  limits    = np.array([ax.get_xlim3d(), ax.get_ylim3d(), ax.get_zlim3d()])
  min_limit = np.min(limits[:, 0])
  max_limit = np.max(limits[:, 1])
  return min_limit, max_limit


def plot_3d_trajectories(
  results : dict,
) -> Figure:
  """
  Plot the sampled 3D position of every body.

  Input:
  ------
    results : dict
      Mapping of body name -> result dict with 'state' (6xN array).

  Output:
  -------
    matplotlib.figure.Figure
      Figure object containing the 3D plot.
  """
  fig = plt.figure(figsize=(10, 10))
  ax  = fig.add_subplot(111, projection='3d')

  for name, result in results.items():
    posvel_vec = result['state']
    if posvel_vec.size == 0 or posvel_vec.shape[0] < 3:
      continue
    pos_x, pos_y, pos_z = posvel_vec[0, :], posvel_vec[1, :], posvel_vec[2, :]

    line, = ax.plot(pos_x, pos_y, pos_z, '-', linewidth=1, label=name)
    ax.scatter([pos_x[0]],  [pos_y[0]],  [pos_z[0]],  s=60, marker='>', facecolors='white', edgecolors=line.get_color()) # type: ignore
    ax.scatter([pos_x[-1]], [pos_y[-1]], [pos_z[-1]], s=60, marker='s', facecolors='white', edgecolors=line.get_color()) # type: ignore

  ax.set_xlabel('Pos-X [m]')
  ax.set_ylabel('Pos-Y [m]')
  ax.set_zlabel('Pos-Z [m]') # type: ignore
  ax.grid(True)
  ax.set_box_aspect([1, 1, 1]) # type: ignore
  min_limit, max_limit = get_equal_limits(ax)
  ax.set_xlim([min_limit, max_limit]) # type: ignore
  ax.set_ylim([min_limit, max_limit]) # type: ignore
  ax.set_zlim([min_limit, max_limit]) # type: ignore
  if results:
    ax.legend(loc='upper right')

  return fig


def plot_time_series(
  results : dict,
) -> Figure:
  """
  Plot position and velocity magnitudes of every body against sample time.
  """
  fig, (ax_pos, ax_vel) = plt.subplots(2, 1, figsize=(12, 8), sharex=True)

  for name, result in results.items():
    posvel_vec = result['state']
    if posvel_vec.size == 0 or posvel_vec.shape[0] < 6:
      continue
    time_arr = result['time']
    ax_pos.plot(time_arr, np.linalg.norm(posvel_vec[0:3, :], axis=0), '-', label=name)
    ax_vel.plot(time_arr, np.linalg.norm(posvel_vec[3:6, :], axis=0), '-', label=name)

  ax_pos.set_ylabel('Pos Mag [m]')
  ax_vel.set_ylabel('Vel Mag [m/s]')
  ax_vel.set_xlabel('Time [s]')
  for ax in (ax_pos, ax_vel):
    ax.grid(True)
  if results:
    ax_pos.legend(loc='upper right')

  fig.tight_layout()
  return fig


def generate_plots(
  results            : dict,
  figures_folderpath : Path,
  scenario_name      : str,
) -> list[Path]:
  """
  Create and save the history plots.

  Output:
  -------
    filepaths : list[Path]
      Saved figure files.
  """
  figures_folderpath = Path(figures_folderpath)
  figures_folderpath.mkdir(parents=True, exist_ok=True)

  print("\nGenerate and Save Plots")
  filepaths = []
  for suffix, plot_function in (('3d', plot_3d_trajectories), ('time_series', plot_time_series)):
    fig      = plot_function(results)
    filepath = figures_folderpath / f"{scenario_name}_{suffix}.png"
    fig.savefig(filepath, dpi=150, bbox_inches='tight')
    plt.close(fig)
    filepaths.append(filepath)
    print(f"  {filepath.name}")

  return filepaths
