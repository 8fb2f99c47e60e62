"""
Multi-Body State Propagator

Description:
  Propagates the states of one or more bodies across a time interval, records
  their history at a fixed output interval, and reports the final states.
  Bodies can be propagated by a delegated propagator with its own integrator
  settings, or coupled together under mutual gravitation.

Usage:

  Argument                     Required   Description
  ---------------------------  --------   --------------------------------------------------
  --scenario                   Yes        Scenario .yaml file
  --interval                   No         Override interval start and end [s]
  --fixed-output-interval      No         Override fixed output interval [s]
  --method                     No         Override top-level integration method
  --output-folderpath          No         Root folder for logs and figures
  --save-plots                 No         Save history plots

  Example Commands:
    python -m orbit_propagation.main \
      --scenario data/scenarios/leo_pair.yaml \
      --fixed-output-interval 60 \
      --save-plots
"""
from pathlib import Path
from typing  import Optional

from orbit_propagation.input.cli            import parse_command_line_arguments
from orbit_propagation.input.configuration  import build_config, load_scenario, print_configuration
from orbit_propagation.plot.trajectory      import generate_plots
from orbit_propagation.propagation.runner   import build_propagator, run_propagation
from orbit_propagation.utility.logger       import logging_to_file
from orbit_propagation.utility.printer      import print_results_summary


def main(
  scenario_filepath     : str,
  interval              : Optional[list]  = None,
  fixed_output_interval : Optional[float] = None,
  method                : Optional[str]   = None,
  output_folderpath     : Optional[str]   = None,
  save_plots            : bool            = False,
) -> dict:
  """
  Main function to run a propagation scenario.

  Input:
  ------
    scenario_filepath : str
      Path to the scenario .yaml file.
    interval : list | None
      [start, end] override [s].
    fixed_output_interval : float | None
      Fixed output interval override [s].
    method : str | None
      Integration method override.
    output_folderpath : str | None
      Root folder for logs and figures.
    save_plots : bool
      Flag to enable/disable saving plots.

  Output:
  -------
    result : dict
      Dictionary containing:
      - success : bool - True if every body completed
      - results : dict - Per-body result dicts
      - log_filepath : Path - Log file of this run
  """
  # Process inputs and setup
  config = build_config(
    load_scenario(Path(scenario_filepath)),
    time_o                = interval[0] if interval is not None else None,
    time_f                = interval[1] if interval is not None else None,
    fixed_output_interval = fixed_output_interval,
    method                = method,
    output_folderpath     = Path(output_folderpath) if output_folderpath is not None else None,
    save_plots            = save_plots,
  )

  # Start logging to file
  with logging_to_file(config.log_filepath):
    print_configuration(config)

    # Build and run
    propagator, _ = build_propagator(config)
    results       = run_propagation(propagator)

    # Display results and create plots
    print_results_summary(results)
    if config.save_plots:
      generate_plots(results, config.figures_folderpath, config.scenario_name)

  return {
    'success'      : all(result['success'] for result in results.values()),
    'results'      : results,
    'log_filepath' : config.log_filepath,
  }


if __name__ == "__main__":
  # Parse command-line arguments
  args = parse_command_line_arguments()

  # Run main function
  main(
    args.scenario_filepath,
    args.interval,
    args.fixed_output_interval,
    args.method,
    args.output_folderpath,
    args.save_plots,
  )
