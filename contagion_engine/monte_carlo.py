"""
Monte Carlo experiment harness for the contagion engine.

Runs independent trials of a fixed number of propagation steps from the same
initial snapshot and returns distributional statistics.  Each trial draws
from its own Generator spawned from a master seed, so the whole experiment is
reproducible from that seed.

Design principles
-----------------
* No global RNG state: every trial owns its Generator.
* The initial snapshot is shared read-only across trials.
* Confidence intervals use scipy.stats.t (t-distribution, two-tailed).
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.random import Generator, SeedSequence, default_rng
from scipy import stats

from .propagation import run_steps
from .state import STATE_COLLAPSED, SystemState


# ---------------------------------------------------------------------------
# Statistics helpers
# ---------------------------------------------------------------------------


def trial_generators(seed: int, trials: int) -> list[Generator]:
    """One Generator per trial, spawned from ``seed`` so streams never overlap."""
    return [default_rng(child) for child in SeedSequence(seed).spawn(trials)]


def mean_interval(values, confidence: float = 0.95) -> tuple[float, float]:
    """Two-sided Student-t interval for the mean of ``values``.

    Identical values give the degenerate interval ``(mean, mean)``.

    Raises
    ------
    ValueError
        If fewer than two values are given or ``confidence`` is not in (0, 1).
    """
    x = np.asarray(values, dtype=np.float64)
    if x.size < 2:
        raise ValueError(f"need at least 2 values for an interval; got {x.size}.")
    if not (0.0 < confidence < 1.0):
        raise ValueError(f"confidence must be in (0, 1); got {confidence}.")
    centre = float(x.mean())
    half_width = float(stats.t.ppf(0.5 + confidence / 2.0, df=x.size - 1) * stats.sem(x))
    return centre - half_width, centre + half_width


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MonteCarloResult:
    """Immutable container for Monte Carlo experiment results.

    Attributes
    ----------
    collapse_fractions : np.ndarray, shape (trials,)
        Fraction of units collapsed at the end of each trial.
    collapse_probability : np.ndarray, shape (n_units,)
        Per-unit share of trials ending with that unit collapsed, in the
        order of ``unit_ids``.
    unit_ids : tuple of str
        Unit ids in snapshot order.
    mean_collapse_fraction : float
    variance_collapse_fraction : float
        Sample variance (ddof=1).
    ci_low, ci_high : float
        95% confidence interval for the mean collapse fraction.
    trials, steps, seed : int
        Experiment parameters.
    """
    collapse_fractions: np.ndarray
    collapse_probability: np.ndarray
    unit_ids: tuple[str, ...]
    mean_collapse_fraction: float
    variance_collapse_fraction: float
    ci_low: float
    ci_high: float
    trials: int
    steps: int
    seed: int

    def summary_dict(self) -> dict:
        """Return a JSON-serialisable summary."""
        return {
            "trials": self.trials,
            "steps": self.steps,
            "seed": self.seed,
            "n_units": len(self.unit_ids),
            "mean_collapse_fraction": self.mean_collapse_fraction,
            "variance_collapse_fraction": self.variance_collapse_fraction,
            "ci_95_low": self.ci_low,
            "ci_95_high": self.ci_high,
            "min_collapse_fraction": float(np.min(self.collapse_fractions)),
            "max_collapse_fraction": float(np.max(self.collapse_fractions)),
            "collapse_probability": {
                uid: float(p)
                for uid, p in zip(self.unit_ids, self.collapse_probability)
            },
        }


# ---------------------------------------------------------------------------
# Core runner
# ---------------------------------------------------------------------------


def run_monte_carlo(
    state: SystemState,
    steps: int,
    trials: int,
    seed: int,
) -> MonteCarloResult:
    """Run ``trials`` independent ``steps``-step simulations from ``state``.

    Parameters
    ----------
    state : SystemState
        Initial snapshot, shared by every trial.
    steps : int
        Propagation steps per trial.
    trials : int
        Number of independent trials (>= 2 for the CI).
    seed : int
        Master seed; per-trial Generators are spawned via SeedSequence.

    Returns
    -------
    MonteCarloResult

    Raises
    ------
    ValueError
        If ``trials < 2``, ``steps < 0`` or ``state`` has no units.
    """
    if trials < 2:
        raise ValueError(f"trials must be >= 2 for CI computation; got {trials}.")
    if steps < 0:
        raise ValueError(f"steps must be >= 0; got {steps}.")
    n = len(state.units)
    if n == 0:
        raise ValueError("state must contain at least one unit.")

    collapsed = np.zeros((trials, n), dtype=bool)
    for trial, trial_rng in enumerate(trial_generators(seed, trials)):
        final = run_steps(state, steps, trial_rng)
        collapsed[trial] = [u.state == STATE_COLLAPSED for u in final.units]

    fractions = collapsed.mean(axis=1)
    ci_low, ci_high = mean_interval(fractions)

    return MonteCarloResult(
        collapse_fractions=fractions,
        collapse_probability=collapsed.mean(axis=0),
        unit_ids=tuple(u.id for u in state.units),
        mean_collapse_fraction=float(np.mean(fractions)),
        variance_collapse_fraction=float(np.var(fractions, ddof=1)),
        ci_low=ci_low,
        ci_high=ci_high,
        trials=trials,
        steps=steps,
        seed=seed,
    )
