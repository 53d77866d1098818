"""
Contagion step engine.

Implements a synchronous, discrete-time stress propagation model over an
undirected weighted graph.  For every unit that has not collapsed:

    flux_i      = (sum of weights of COLLAPSED neighbours) / W_i
    sigma_i'    = clamp01( (1 - gamma) * sigma_i + tau * flux_i )
    P(collapse) = sigmoid( k * (sigma_i' - phi_i) )

where W_i is the total neighbour weight (1.0 for isolated units).  One
uniform draw r is consumed per non-collapsed unit, in unit order; the unit
collapses when P(collapse) > r.  Otherwise it is STRESSED if
sigma_i' > 0.5 * phi_i, else STABLE.

Neighbour states are always read from the pre-step snapshot, so the result
does not depend on the order in which units are visited.  COLLAPSED is
absorbing: collapsed units are carried over unchanged and consume no draw.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Mapping, Union

from numpy.random import Generator, default_rng
from scipy.special import expit as _expit

from .graph import AdjacencyMap, adjacency_for, neighbors, total_weight
from .state import (
    DEFAULT_COLLAPSE_SHARPNESS,
    DEFAULT_DECAY_RATE,
    STATE_COLLAPSED,
    SystemState,
    Unit,
    classify_stress,
    unit_index,
)


Sampler = Callable[[], float]
RandomSource = Union[Sampler, Generator, None]


# ---------------------------------------------------------------------------
# Absorption guard
# ---------------------------------------------------------------------------


class AbsorptionViolation(RuntimeError):
    """Raised when a collapsed unit's stress or state changes between steps."""


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------


def clamp01(x: float) -> float:
    """Clamp ``x`` into [0, 1] inclusive."""
    return max(0.0, min(1.0, x))


def sigmoid(x: float) -> float:
    """Logistic function 1 / (1 + e^-x).

    Uses ``scipy.special.expit`` which does not overflow at extreme inputs.
    """
    return float(_expit(x))


def as_sampler(rng: RandomSource) -> Sampler:
    """Normalise a random source into a zero-argument sampler.

    Parameters
    ----------
    rng : callable, numpy Generator or None
        A callable returning uniform floats in [0, 1), a numpy ``Generator``
        (its ``random`` method is used), or ``None`` for a fresh
        entropy-seeded Generator.
    """
    if rng is None:
        return default_rng().random
    if isinstance(rng, Generator):
        return rng.random
    if callable(rng):
        return rng
    raise TypeError(f"rng must be callable or a numpy Generator; got {type(rng)!r}.")


# ---------------------------------------------------------------------------
# Flux
# ---------------------------------------------------------------------------


def collapsed_flux(
    unit_id: str,
    adj: AdjacencyMap,
    index: Mapping[str, Unit],
) -> float:
    """Weighted fraction of ``unit_id``'s neighbours that are collapsed.

    Neighbour ids missing from ``index`` contribute nothing to the numerator
    but still count toward the total weight.
    """
    nbrs = neighbors(adj, unit_id)
    dw = total_weight(nbrs)
    failed = 0.0
    for n in nbrs:
        neighbor = index.get(n.id)
        if neighbor is not None and neighbor.state == STATE_COLLAPSED:
            failed += n.weight
    return failed / dw


def neighbor_flux(state: SystemState, unit_id: str) -> float:
    """Current collapsed flux for ``unit_id`` within ``state``."""
    return collapsed_flux(
        unit_id, adjacency_for(state.connections), unit_index(state.units)
    )


# ---------------------------------------------------------------------------
# Single propagation step
# ---------------------------------------------------------------------------


def propagation_step(state: SystemState, rng: RandomSource = None) -> SystemState:
    """Compute one synchronous propagation step.

    Parameters
    ----------
    state : SystemState
        Input snapshot.  Never mutated.
    rng : callable, numpy Generator or None, optional
        Source of uniform [0, 1) draws.  Pass a deterministic source in tests.

    Returns
    -------
    SystemState
        New snapshot with updated stress and state for every unit that was
        not already collapsed.
    """
    draw = as_sampler(rng)
    tau = state.global_transmission_factor
    gamma = DEFAULT_DECAY_RATE if state.decay_rate is None else state.decay_rate
    k = (
        DEFAULT_COLLAPSE_SHARPNESS
        if state.collapse_sharpness is None
        else state.collapse_sharpness
    )

    adj = adjacency_for(state.connections)
    # Read-only view of the pre-step snapshot; new records go to ``updated``.
    index = unit_index(state.units)

    updated: list[Unit] = []
    for u in state.units:
        if u.state == STATE_COLLAPSED:
            updated.append(u)
            continue

        flux = collapsed_flux(u.id, adj, index)
        next_stress = clamp01((1.0 - gamma) * u.stress + tau * flux)
        prob = sigmoid(k * (next_stress - u.resilience))

        if prob > draw():
            new_state = STATE_COLLAPSED
        else:
            new_state = classify_stress(next_stress, u.resilience)

        updated.append(replace(u, stress=next_stress, state=new_state))

    return state.with_units(updated)


# ---------------------------------------------------------------------------
# Multi-step runner
# ---------------------------------------------------------------------------


def _check_absorption(before: SystemState, after: SystemState, step: int) -> None:
    after_index = unit_index(after.units)
    violators = []
    for u in before.units:
        if u.state != STATE_COLLAPSED:
            continue
        v = after_index.get(u.id)
        if v is None or v.state != STATE_COLLAPSED or v.stress != u.stress:
            violators.append(u.id)
    if violators:
        raise AbsorptionViolation(
            f"Absorption violated at step {step} for units: {violators}"
        )


def run_steps(
    state: SystemState,
    steps: int,
    rng: RandomSource = None,
) -> SystemState:
    """Apply ``propagation_step`` ``steps`` times and return the final snapshot.

    Intermediate snapshots are not retained.  A single sampler is shared by
    all steps, so a seeded Generator makes the whole run reproducible.

    Raises
    ------
    ValueError
        If ``steps`` is negative.
    AbsorptionViolation
        If any collapsed unit changes between consecutive steps.
    """
    if steps < 0:
        raise ValueError(f"steps must be >= 0; got {steps}.")
    draw = as_sampler(rng)
    current = state
    for step in range(1, steps + 1):
        nxt = propagation_step(current, draw)
        _check_absorption(current, nxt, step)
        current = nxt
    return current
