"""Named initial conditions loaded from JSON.

This module reads configuration definitions from the repository data directory:
    data/configurations/*.json

JSON schema (minimal):
{
  "name": "default",
  "description": "...",
  "G": 1000.0,
  "softening": 5.0,
  "bodies": [
    {"position": [x, y, z], "velocity": [vx, vy, vz], "mass": m},
    ...
  ]
}

Notes:
- `description`, `G` and `softening` are optional; G and softening default to the
  `DynamicsParams` defaults when missing or null.
- `bodies` must hold exactly 3 entries. Extra per-body keys such as `color` or
  `radius` are allowed and ignored.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .bodies import parse_configuration, state_to_config
from .dynamics import DynamicsParams

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamedConfiguration:
    name: str
    bodies: List[Dict[str, Any]]
    params: DynamicsParams = field(default_factory=DynamicsParams)
    description: str | None = None


def _repo_root() -> Path:
    # .../src/orbitsweep/configurations.py -> repo root is parents[2]
    return Path(__file__).resolve().parents[2]


def configurations_dir() -> Path:
    """Return the path to the on-disk configuration JSON directory."""
    return _repo_root() / "data" / "configurations"


def list_configurations() -> List[str]:
    """List available configuration names (derived from JSON filenames)."""
    root = configurations_dir()
    if not root.exists():
        return []
    return sorted(p.stem for p in root.glob("*.json") if p.is_file())


def _optional_float(d: Dict[str, Any], key: str, default: float) -> float:
    raw = d.get(key, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"'{key}' must be a number or null") from e


def parse_named_configuration(d: Dict[str, Any], *, fallback_name: str) -> NamedConfiguration:
    if not isinstance(d, dict):
        raise ValueError("Configuration JSON must be an object")

    name = d.get("name", fallback_name)
    if not isinstance(name, str) or not name:
        raise ValueError("'name' must be a non-empty string")

    bodies_raw = d.get("bodies", None)
    if not isinstance(bodies_raw, list):
        raise ValueError("'bodies' must be a list")
    # Validates count, masses and vectors; drops rendering hints.
    bodies = state_to_config(parse_configuration(bodies_raw))

    defaults = DynamicsParams()
    params = DynamicsParams(
        G=_optional_float(d, "G", defaults.G),
        softening=_optional_float(d, "softening", defaults.softening),
    )

    description_raw = d.get("description", None)
    description = None if description_raw is None else str(description_raw)

    return NamedConfiguration(name=name, bodies=bodies, params=params, description=description)


def load_configuration(name: str) -> NamedConfiguration:
    """Load a configuration from `data/configurations/{name}.json`."""
    if not isinstance(name, str) or not name:
        raise ValueError("name must be a non-empty string")

    path = configurations_dir() / f"{name}.json"
    if not path.exists():
        available = ", ".join(list_configurations())
        raise FileNotFoundError(
            f"Configuration '{name}' not found at {path}. Available: {available or '(none)'}"
        )

    with path.open("r", encoding="utf-8") as f:
        d = json.load(f)

    log.debug("loading configuration %s from %s", name, path)
    return parse_named_configuration(d, fallback_name=path.stem)


def default_configuration() -> List[Dict[str, Any]]:
    """Bodies of the `default` configuration (fresh dicts on every call)."""
    return load_configuration("default").bodies
