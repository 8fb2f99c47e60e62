import math
import yaml
import numpy as np

from pathlib  import Path
from datetime import datetime
from types    import SimpleNamespace
from typing   import Optional

from orbit_propagation.model.constants import SOLARSYSTEMCONSTANTS


DEFAULT_INTEGRATOR = {
  'method'      : 'DOP853',
  'rtol'        : 1.0e-12,
  'atol'        : 1.0e-12,
  'max_step__s' : None,
}

SUPPORTED_DYNAMICS_MODELS = ['two_body', 'n_body']


def parse_vec(
  raw_val,
  label : str,
) -> np.ndarray:
  """
  Parse a vector given as a "x, y, z" string or a list.

  Input:
  ------
    raw_val : str | list
      Raw value from the scenario file.
    label : str
      Key name used in error messages.

  Output:
  -------
    vec : np.ndarray
      Parsed vector.
  """
  if isinstance(raw_val, str):
    clean = raw_val.replace('[', '').replace(']', '')
    return np.array([float(x.strip()) for x in clean.split(',')])
  elif isinstance(raw_val, (list, tuple)):
    return np.array([float(x) for x in raw_val])
  else:
    raise ValueError(f"Unknown format for '{label}': {raw_val}")


def parse_optional_float(
  raw_val,
  label : str,
) -> Optional[float]:
  if raw_val is None:
    return None
  try:
    return float(raw_val)
  except (TypeError, ValueError):
    raise ValueError(f"'{label}' must be a number, got {raw_val!r}") from None


def normalize_integrator(
  raw_integrator : Optional[dict],
  defaults       : dict = DEFAULT_INTEGRATOR,
) -> SimpleNamespace:
  """
  Merge an integrator section with its defaults.

  Input:
  ------
    raw_integrator : dict | None
      Integrator section from the scenario file.
    defaults : dict
      Default values for missing keys.

  Output:
  -------
    integrator : SimpleNamespace
      Namespace with method, rtol, atol, max_step.
  """
  merged = dict(defaults)
  merged.update(raw_integrator or {})

  unknown_keys = set(merged) - set(DEFAULT_INTEGRATOR)
  if unknown_keys:
    raise ValueError(f"Unknown integrator keys: {sorted(unknown_keys)}")

  max_step = parse_optional_float(merged['max_step__s'], 'max_step__s')

  return SimpleNamespace(
    method   = str(merged['method']),
    rtol     = float(merged['rtol']),
    atol     = float(merged['atol']),
    max_step = math.inf if max_step is None else max_step,
  )


def parse_body(
  raw_body       : dict,
  index          : int,
  raw_integrator : dict,
) -> SimpleNamespace:
  """
  Parse one entry of the scenario 'bodies' list.

  Supports 'state' (list) OR 'pos_vec__m' and 'vel_vec__m_per_s'.
  An 'integrator' section turns the body into a delegated body propagated by
  its own numerical propagator.
  """
  if not isinstance(raw_body, dict):
    raise ValueError(f"Body entry {index} must be a mapping, got {raw_body!r}")

  name = str(raw_body.get('name', f'body_{index}'))

  if 'state' in raw_body:
    state = parse_vec(raw_body['state'], f'{name}.state')
  elif 'pos_vec__m' in raw_body and 'vel_vec__m_per_s' in raw_body:
    state = np.concatenate((
      parse_vec(raw_body['pos_vec__m'],       f'{name}.pos_vec__m'),
      parse_vec(raw_body['vel_vec__m_per_s'], f'{name}.vel_vec__m_per_s'),
    ))
  else:
    raise ValueError(f"Body '{name}' must contain 'state' or 'pos_vec__m'/'vel_vec__m_per_s'.")

  integrator = None
  if raw_body.get('integrator') is not None:
    integrator = normalize_integrator(raw_body['integrator'], defaults=dict(DEFAULT_INTEGRATOR, **raw_integrator))

  return SimpleNamespace(
    name       = name,
    state      = state,
    gp         = float(raw_body.get('gp__m3_per_s2', 0.0)),
    integrator = integrator,
  )


def load_scenario(
  scenario_filepath : Path,
) -> dict:
  """
  Load a scenario YAML file.

  Raises:
  -------
    FileNotFoundError
      If the file does not exist.
    ValueError
      If the file is not a YAML mapping.
  """
  scenario_filepath = Path(scenario_filepath)
  if not scenario_filepath.exists():
    raise FileNotFoundError(f"Scenario file not found: {scenario_filepath}")

  with open(scenario_filepath, 'r') as f:
    scenario = yaml.safe_load(f)

  if not isinstance(scenario, dict):
    raise ValueError(f"Scenario file {scenario_filepath} must contain a mapping at the top level")
  return scenario


def setup_paths(
  output_folderpath : Path,
  scenario_name     : str,
  timestamp         : Optional[datetime] = None,
) -> dict:
  """
  Set up output folderpaths and filepaths. Nothing is created on disk.

  Output:
  -------
    paths : dict
      output_folderpath, timestamp_folderpath, figures_folderpath, log_filepath.
  """
  timestamp            = timestamp if timestamp is not None else datetime.now()
  timestamp_folderpath = Path(output_folderpath) / f"{timestamp.strftime('%Y%m%d_%H%M%S')}_{scenario_name}"

  return {
    'output_folderpath'    : Path(output_folderpath),
    'timestamp_folderpath' : timestamp_folderpath,
    'figures_folderpath'   : timestamp_folderpath / 'figures',
    'log_filepath'         : timestamp_folderpath / 'output.log',
  }


def build_config(
  scenario              : dict,
  time_o                : Optional[float] = None,
  time_f                : Optional[float] = None,
  fixed_output_interval : Optional[float] = None,
  method                : Optional[str]   = None,
  output_folderpath     : Optional[Path]  = None,
  save_plots            : bool            = False,
) -> SimpleNamespace:
  """
  Parse and validate a scenario, applying command-line overrides.

  Input:
  ------
    scenario : dict
      Scenario mapping, as loaded by load_scenario.
    time_o : float | None
      Overrides interval.start__s [s].
    time_f : float | None
      Overrides interval.end__s [s].
    fixed_output_interval : float | None
      Overrides interval.fixed_output__s [s].
    method : str | None
      Overrides integrator.method.
    output_folderpath : Path | None
      Root folder for outputs (default: <cwd>/output).
    save_plots : bool
      Flag to enable/disable saving history plots.

  Output:
  -------
    config : SimpleNamespace
      Configuration object for build_propagator and main.

  Raises:
  -------
    ValueError
      If a section is missing or malformed.
  """
  scenario_name = str(scenario.get('name', 'scenario'))

  # Interval
  raw_interval = scenario.get('interval') or {}
  if time_o is None:
    time_o = parse_optional_float(raw_interval.get('start__s'), 'interval.start__s')
  if time_f is None:
    time_f = parse_optional_float(raw_interval.get('end__s'), 'interval.end__s')
  if fixed_output_interval is None:
    fixed_output_interval = parse_optional_float(raw_interval.get('fixed_output__s'), 'interval.fixed_output__s')
  if time_o is None or time_f is None:
    raise ValueError("Scenario must define interval.start__s and interval.end__s (or pass --interval).")

  # Integrator
  raw_integrator = dict(scenario.get('integrator') or {})
  if method is not None:
    raw_integrator['method'] = method
  integrator = normalize_integrator(raw_integrator)

  # Dynamics
  raw_dynamics = scenario.get('dynamics') or {}
  dynamics_model = str(raw_dynamics.get('model', 'two_body')).lower().replace('-', '_')
  if dynamics_model not in SUPPORTED_DYNAMICS_MODELS:
    raise ValueError(f"Dynamics model '{dynamics_model}' is not supported. Options: {SUPPORTED_DYNAMICS_MODELS}")

  central_body = str(raw_dynamics.get('central_body', 'EARTH')).upper()
  if central_body not in SOLARSYSTEMCONSTANTS.NAME_TO_BODY:
    raise ValueError(f"Central body '{central_body}' is not supported. Options: {list(SOLARSYSTEMCONSTANTS.NAME_TO_BODY.keys())}")
  gravity_harmonics_list = [h.upper() for h in (raw_dynamics.get('gravity_harmonics') or [])]
  unsupported_harmonics  = [h for h in gravity_harmonics_list if h != 'J2']
  if unsupported_harmonics:
    raise ValueError(f"Gravity harmonics {unsupported_harmonics} are not supported. Options: ['J2']")

  # Bodies
  raw_bodies = scenario.get('bodies') or []
  if not raw_bodies:
    raise ValueError("Scenario must define at least one body.")
  bodies = [parse_body(raw_body, index, raw_integrator) for index, raw_body in enumerate(raw_bodies)]

  names = [body.name for body in bodies]
  if len(set(names)) != len(names):
    raise ValueError(f"Body names must be unique, got {names}")

  # Paths
  paths = setup_paths(
    output_folderpath = output_folderpath if output_folderpath is not None else Path.cwd() / 'output',
    scenario_name     = scenario_name,
  )

  return SimpleNamespace(
    scenario_name          = scenario_name,
    time_o                 = time_o,
    time_f                 = time_f,
    fixed_output_interval  = fixed_output_interval,
    integrator             = integrator,
    dynamics_model         = dynamics_model,
    central_body           = central_body,
    gravity_harmonics_list = gravity_harmonics_list,
    bodies                 = bodies,
    save_plots             = save_plots,
    output_folderpath      = paths['output_folderpath'],
    timestamp_folderpath   = paths['timestamp_folderpath'],
    figures_folderpath     = paths['figures_folderpath'],
    log_filepath           = paths['log_filepath'],
  )


def print_configuration(
  config : SimpleNamespace,
) -> None:
  """
  Print the input configuration.
  """
  harmonics_str = ' '.join(config.gravity_harmonics_list) if config.gravity_harmonics_list else "None"
  output_str    = f"{config.fixed_output_interval} s" if config.fixed_output_interval is not None else "None"

  print("\nInput Configuration")
  print(f"  Scenario             : {config.scenario_name}")
  print(f"  Interval             : {config.time_o} s -> {config.time_f} s")
  print(f"  Fixed Output         : {output_str}")
  print(f"  Dynamics             : {config.dynamics_model}")
  print(f"    Central Body       : {config.central_body}")
  print(f"    Gravity Harmonics  : {harmonics_str}")
  print(f"  Integrator           : {config.integrator.method} (rtol={config.integrator.rtol}, atol={config.integrator.atol})")
  print(f"  Bodies               : {len(config.bodies)}")
  for body in config.bodies:
    override_str = f" [delegated: {body.integrator.method}]" if body.integrator is not None else ""
    print(f"    {body.name}{override_str}")

  print("\nPaths and Files Setup")
  print(f"  Output Folderpath    : {config.output_folderpath}")
  print(f"    Log Filepath       : <output_folderpath>/{config.log_filepath.relative_to(config.output_folderpath)}")
