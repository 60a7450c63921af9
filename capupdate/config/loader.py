"""
Configuration loading and merging for capupdate.

The effective configuration is built from three layers, later layers win:

Configuration Layers
--------------------
1. **Built-in defaults** (DEFAULT_CONFIG)
   - Catalog location, report directory, cache, HTTP and source settings
   - Always present

2. **Project file** (capupdate.yaml)
   - Explicit --config path, else ``capupdate.yaml`` in the working directory
   - Optional; a missing implicit file is not an error

3. **Command-line overrides**
   - Values collected from CLI flags (--no-github, --no-cache, ...)

Merge Behavior
--------------
The loader performs deep merging with "last wins" semantics:
  - **Dicts**: Recursively merged (keys from overlay override base)
  - **Lists**: Completely replaced (NOT appended/extended)
  - **Scalars**: Overwritten (strings, numbers, booleans)

Environment Expansion
---------------------
``${VAR}`` inside string values is replaced with the environment variable
(after loading a ``.env`` file with python-dotenv). Unset variables are left
as-is so callers can tell "not configured" apart from "empty".

Path Resolution
---------------
Relative paths are resolved against the directory of the config file (or the
working directory when no file is used). Currently resolved paths:
  - apps_dir
  - output_dir
  - cache.file

Example file
------------
    apps_dir: public/v4/apps
    output_dir: update-reports
    cache:
      ttl_seconds: 7200
    github:
      token: "${GITHUB_TOKEN}"
      repo_map:
        myorg/myapp: myorg/myapp-server

Error Handling
--------------
- FileNotFoundError: Explicit config file doesn't exist
- ConfigError: YAML parse errors or a non-mapping top level
- All errors are chained with "from err" for better debugging
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
import re
from typing import Any

from dotenv import load_dotenv
import yaml

from capupdate.exceptions import ConfigError
from capupdate.logging import get_global_logger

CONFIG_FILE_NAME = "capupdate.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "apps_dir": "public/v4/apps",
    "output_dir": "update-reports",
    "cache": {
        "enabled": True,
        "file": ".version-cache/versions.json",
        "ttl_seconds": 3600,
    },
    "http": {"timeout": 30},
    "dockerhub": {"delay": 1.0, "page_size": 100},
    "github": {
        "enabled": True,
        "delay": 1.0,
        "token": "${GITHUB_TOKEN}",
        "repo_map": {},
    },
}

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> Any:
    """
    Load a YAML file and return the parsed Python object.

    Raises:
      FileNotFoundError      - when file does not exist
      ConfigError            - for invalid YAML or non-UTF-8 bytes with chained context
    """
    if not p.exists():
        raise FileNotFoundError(f"file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    except UnicodeDecodeError as err:
        raise ConfigError(f"File is not valid UTF-8: {p}: {err}") from err


# -------------------------------
# Merge logic
# -------------------------------


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge two dicts with "overlay wins".

    Rules:
      - dict + dict -> deep merge
      - list + list -> overlay REPLACES base (not concatenated)
      - everything else -> overlay overwrites base

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


# -------------------------------
# Environment expansion
# -------------------------------


def _expand_env(value: Any) -> Any:
    """
    Recursively expand ${VAR} in string values; unset variables stay as-is.
    """
    if isinstance(value, str):
        return _ENV_PATTERN.sub(
            lambda m: os.environ.get(m.group(1), m.group(0)), value
        )
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


# -------------------------------
# Path resolution
# -------------------------------


def _resolve_known_paths(cfg: dict[str, Any], base_dir: Path) -> None:
    """
    Resolve relative path fields against 'base_dir'. Modifies cfg in place.
    """
    for key in ("apps_dir", "output_dir"):
        raw = cfg.get(key)
        if isinstance(raw, (str, Path)) and str(raw):
            p = Path(raw)
            cfg[key] = p if p.is_absolute() else (base_dir / p).resolve()

    cache = cfg.get("cache")
    if isinstance(cache, dict):
        raw = cache.get("file")
        if isinstance(raw, (str, Path)) and str(raw):
            p = Path(raw)
            cache["file"] = p if p.is_absolute() else (base_dir / p).resolve()


# -------------------------------
# Public API
# -------------------------------


def load_config(
    config_path: Path | None = None,
    *,
    overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Load the effective capupdate configuration.

    Parameters
    ----------
    config_path : Path, optional
        Explicit config file. When omitted, ``capupdate.yaml`` in the current
        working directory is used if it exists.
    overrides : dict, optional
        Values from the command line, merged last.

    Returns
    -------
    dict
        Merged configuration. ``apps_dir``, ``output_dir`` and ``cache.file``
        are absolute Paths.

    Raises
    ------
    FileNotFoundError
        If an explicit config_path does not exist.
    ConfigError
        If the config file is not valid YAML or not a mapping.
    """
    logger = get_global_logger()
    load_dotenv()

    cfg = copy.deepcopy(DEFAULT_CONFIG)
    base_dir = Path.cwd()

    if config_path is None:
        implicit = Path.cwd() / CONFIG_FILE_NAME
        if implicit.exists():
            config_path = implicit

    if config_path is not None:
        config_path = config_path.resolve()
        logger.verbose("CONFIG", f"Loading config: {config_path}")
        data = _load_yaml_file(config_path)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a mapping: {config_path}")
        cfg = _deep_merge_dicts(cfg, data)
        base_dir = config_path.parent
    else:
        logger.verbose("CONFIG", "No config file found, using built-in defaults")

    if overrides:
        cfg = _deep_merge_dicts(cfg, overrides)

    cfg = _expand_env(cfg)
    _resolve_known_paths(cfg, base_dir)

    logger.debug("CONFIG", f"Apps directory: {cfg['apps_dir']}")
    logger.debug("CONFIG", f"Output directory: {cfg['output_dir']}")
    return cfg
