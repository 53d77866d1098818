"""
contagion_engine — Stress Contagion and Collapse Engine
========================================================

Models cascading failure across a small weighted network of interdependent
units.  Every operation is a pure function from one immutable
``SystemState`` snapshot to a new one.

  Propagation
      Synchronous stress decay plus collapsed-neighbour flux, with a
      sigmoid collapse probability and one uniform draw per live unit.

  Pulse optimizer
      Minimal stress injection that pushes one unit past its resilience.

  Masking
      Logarithmic compression of stress above a disclosure threshold, for
      display values only.

  Intelligence feed
      Random exogenous shocks applied to a single target unit.

Quick start
-----------
>>> from numpy.random import default_rng
>>> from contagion_engine import default_scenario, state_from_config, propagation_step
>>> state = state_from_config(default_scenario())
>>> nxt = propagation_step(state, default_rng(42))
"""

from .state import (
    Unit,
    ModelOfSelf,
    SystemState,
    NewsEvent,
    STATE_STABLE,
    STATE_STRESSED,
    STATE_COLLAPSED,
    classify_stress,
)
from .graph import build_adjacency, adjacency_for, neighbors, total_weight, to_multigraph
from .propagation import (
    propagation_step,
    run_steps,
    collapsed_flux,
    neighbor_flux,
    sigmoid,
    clamp01,
    AbsorptionViolation,
)
from .optimizer import optimize_pulse, apply_pulse
from .masking import generate_deception, perceived_morale, mask_state
from .intel import simulate_news, inject_event, apply_event
from .config import load_config, state_from_config, build_rng, default_scenario
from .metrics import collapse_summary, pulse_cost_ranking, contagion_reach
from .monte_carlo import run_monte_carlo, MonteCarloResult, mean_interval, trial_generators
from .sensitivity import transmission_sensitivity, SensitivityPoint

__all__ = [
    # state
    "Unit", "ModelOfSelf", "SystemState", "NewsEvent",
    "STATE_STABLE", "STATE_STRESSED", "STATE_COLLAPSED", "classify_stress",
    # graph
    "build_adjacency", "adjacency_for", "neighbors", "total_weight", "to_multigraph",
    # propagation
    "propagation_step", "run_steps", "collapsed_flux", "neighbor_flux",
    "sigmoid", "clamp01", "AbsorptionViolation",
    # optimizer / masking
    "optimize_pulse", "apply_pulse",
    "generate_deception", "perceived_morale", "mask_state",
    # intelligence feed
    "simulate_news", "inject_event", "apply_event",
    # config
    "load_config", "state_from_config", "build_rng", "default_scenario",
    # analysis
    "collapse_summary", "pulse_cost_ranking", "contagion_reach",
    "run_monte_carlo", "MonteCarloResult", "mean_interval", "trial_generators",
    "transmission_sensitivity", "SensitivityPoint",
]
