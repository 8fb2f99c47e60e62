import argparse

from typing import Optional, Sequence


def parse_command_line_arguments(
  argv : Optional[Sequence[str]] = None,
) -> argparse.Namespace:
  """
  Parse command-line arguments for the propagator.

  Input:
  ------
    argv : sequence of str | None
      Arguments to parse. None reads from sys.argv.

  Output:
  -------
    args : argparse.Namespace
      Parsed command-line arguments.
  """
  parser = argparse.ArgumentParser(
    description     = 'Multi-body state propagator',
    formatter_class = argparse.RawDescriptionHelpFormatter,
  )

  parser.add_argument(
    '--scenario',
    '--scenario-filepath',
    dest     = 'scenario_filepath',
    type     = str,
    required = True,
    help     = 'Path to the scenario .yaml file (interval, integrator, dynamics, bodies).',
  )
  parser.add_argument(
    '--interval',
    dest    = 'interval',
    type    = float,
    nargs   = 2,
    metavar = ('TIME_START', 'TIME_END'),
    default = None,
    help    = 'Override the propagation interval start and end [s].',
  )
  parser.add_argument(
    '--fixed-output-interval',
    '--output-interval',
    dest    = 'fixed_output_interval',
    type    = float,
    default = None,
    help    = 'Override the fixed output interval [s].',
  )
  parser.add_argument(
    '--method',
    dest    = 'method',
    type    = str,
    choices = ['RK23', 'RK45', 'DOP853', 'Radau', 'BDF', 'LSODA'],
    default = None,
    help    = 'Override the integration method of the top-level propagator.',
  )
  parser.add_argument(
    '--output-folderpath',
    dest    = 'output_folderpath',
    type    = str,
    default = None,
    help    = 'Root folder for logs and figures (default: ./output).',
  )
  parser.add_argument(
    '--save-plots',
    '--plots',
    dest    = 'save_plots',
    action  = 'store_true',
    default = False,
    help    = 'Save history plots (disabled by default).',
  )

  args = parser.parse_args(argv)

  return args
