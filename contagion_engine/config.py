"""
Scenario configuration loader for the contagion engine.

Loads JSON scenario files, validates fields, and turns them into an initial
``SystemState`` plus a seeded numpy random Generator.
"""

from __future__ import annotations

import json
import warnings
from pathlib import Path
from typing import Any

from numpy.random import Generator, default_rng

from .state import (
    DEFAULT_COLLAPSE_SHARPNESS,
    DEFAULT_DECAY_RATE,
    DEFAULT_TRANSMISSION_FACTOR,
    STATE_STABLE,
    UNIT_STATES,
    ModelOfSelf,
    SystemState,
    Unit,
)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

ConfigDict = dict[str, Any]


# ---------------------------------------------------------------------------
# Schema constants
# ---------------------------------------------------------------------------

PARAMETER_DEFAULTS: dict[str, float] = {
    "global_transmission_factor": DEFAULT_TRANSMISSION_FACTOR,
    "decay_rate": DEFAULT_DECAY_RATE,
    "collapse_sharpness": DEFAULT_COLLAPSE_SHARPNESS,
}

DEFAULT_SCENARIO_PATH = Path(__file__).parent / "config_supply_chain.json"


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


def load_config(path: str | Path) -> ConfigDict:
    """Load and validate a JSON scenario file.

    Parameters
    ----------
    path : str or Path
        Path to the JSON scenario file.

    Returns
    -------
    ConfigDict
        Validated configuration dictionary.

    Raises
    ------
    ValueError
        If required fields are missing or values are invalid.
    FileNotFoundError
        If the config file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("r") as fh:
        cfg: ConfigDict = json.load(fh)

    _validate_config(cfg)
    return cfg


def default_scenario() -> ConfigDict:
    """Load the bundled six-unit semiconductor supply-chain scenario."""
    return load_config(DEFAULT_SCENARIO_PATH)


def _validate_config(cfg: ConfigDict) -> None:
    """Validate top-level scenario fields.

    Structural problems raise ``ValueError``.  Values that are legal but
    suspicious (stress or resilience outside [0, 1], connections naming
    unknown units) only emit a ``UserWarning``; the engine treats them as
    inert rather than rejecting them.
    """
    required_top = {"units", "connections", "seed"}
    missing = required_top - cfg.keys()
    if missing:
        raise ValueError(f"Config missing required fields: {missing}")

    units = cfg["units"]
    if not isinstance(units, list) or not units:
        raise ValueError("units must be a non-empty list")

    ids: list[str] = []
    for i, u in enumerate(units):
        for key in ("id", "resilience"):
            if key not in u:
                raise ValueError(f"units[{i}] is missing required field {key!r}")
        state = u.get("state", STATE_STABLE)
        if state not in UNIT_STATES:
            raise ValueError(
                f"units[{i}].state must be one of {UNIT_STATES}, got {state!r}"
            )
        if "position" in u and len(u["position"]) != 3:
            raise ValueError(f"units[{i}].position must have 3 coordinates")
        ids.append(str(u["id"]))

    dupes = sorted({x for x in ids if ids.count(x) > 1})
    if dupes:
        raise ValueError(f"Duplicate unit ids: {dupes}")

    out_of_range = [
        u["id"] for u in units
        if not (0.0 <= float(u["resilience"]) <= 1.0)
        or not (0.0 <= float(u.get("stress", 0.0)) <= 1.0)
    ]
    if out_of_range:
        warnings.warn(
            f"_validate_config: stress or resilience outside [0, 1] for units "
            f"{out_of_range}. Values are loaded unchanged.",
            UserWarning,
            stacklevel=3,
        )

    known = set(ids)
    unknown: set[str] = set()
    for j, edge in enumerate(cfg["connections"]):
        if len(edge) not in (2, 3):
            raise ValueError(
                f"connections[{j}] must be [id, id] or [id, id, weight]; got {edge!r}"
            )
        unknown.update(str(e) for e in edge[:2] if str(e) not in known)
    if unknown:
        warnings.warn(
            f"_validate_config: connections reference unknown unit ids "
            f"{sorted(unknown)}. Those neighbours contribute no flux.",
            UserWarning,
            stacklevel=3,
        )

    params = cfg.get("parameters") or {}
    bad = set(params) - PARAMETER_DEFAULTS.keys()
    if bad:
        raise ValueError(
            f"Unknown parameters {sorted(bad)}; expected a subset of "
            f"{sorted(PARAMETER_DEFAULTS)}"
        )


# ---------------------------------------------------------------------------
# State construction
# ---------------------------------------------------------------------------


def _unit_from_config(u: ConfigDict) -> Unit:
    return Unit(
        id=str(u["id"]),
        resilience=float(u["resilience"]),
        stress=float(u.get("stress", 0.0)),
        state=u.get("state", STATE_STABLE),
        model_of_self=ModelOfSelf(
            perceived_morale=float(u.get("perceived_morale", 1.0)),
            is_detected=bool(u.get("is_detected", False)),
        ),
        position=tuple(float(c) for c in u.get("position", (0.0, 0.0, 0.0))),
    )


def state_from_config(cfg: ConfigDict) -> SystemState:
    """Build the initial ``SystemState`` described by ``cfg``.

    Missing or null parameters fall back to ``PARAMETER_DEFAULTS``.
    """
    given = cfg.get("parameters") or {}
    params = {
        **PARAMETER_DEFAULTS,
        **{k: v for k, v in given.items() if v is not None},
    }
    connections = tuple(
        (str(e[0]), str(e[1])) if len(e) == 2 else (str(e[0]), str(e[1]), float(e[2]))
        for e in cfg["connections"]
    )
    return SystemState(
        units=tuple(_unit_from_config(u) for u in cfg["units"]),
        connections=connections,
        global_transmission_factor=float(params["global_transmission_factor"]),
        decay_rate=float(params["decay_rate"]),
        collapse_sharpness=float(params["collapse_sharpness"]),
    )


def build_rng(cfg: ConfigDict) -> Generator:
    """Build a seeded numpy Generator from a config dict's ``seed``."""
    return default_rng(int(cfg["seed"]))
