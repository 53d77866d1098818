"""
Pulse optimizer: minimal external stress needed to tip a single unit.

The required pulse is

    pulse = max(0, (phi - (sigma + tau * neighbor_flux)) + eps)

i.e. just enough to lift the unit's stress, plus the ambient contribution of
its collapsed neighbours, a margin ``eps`` past its resilience.

Applying a pulse uses a hard threshold (``stress >= phi`` collapses), which
is deliberately not the sigmoid rule of the propagation step.
"""

from __future__ import annotations

from dataclasses import replace

from .state import (
    STATE_COLLAPSED,
    STATE_STRESSED,
    SystemState,
    Unit,
    replace_unit,
)


DEFAULT_PULSE_TAU: float = 0.15
DEFAULT_PULSE_EPS: float = 0.01


def optimize_pulse(
    unit: Unit,
    neighbor_flux: float = 0.0,
    tau: float = DEFAULT_PULSE_TAU,
    eps: float = DEFAULT_PULSE_EPS,
) -> float:
    """Return the minimal non-negative stress increment that tips ``unit``.

    Parameters
    ----------
    unit : Unit
        Target unit.
    neighbor_flux : float, optional
        Assumed collapsed-neighbour flux.  Default 0.
    tau : float, optional
        Transmission factor applied to ``neighbor_flux``.  Default 0.15.
    eps : float, optional
        Margin past resilience.  Default 0.01.

    Returns
    -------
    float
        Pulse >= 0.  Zero when the unit is already past its resilience.
    """
    req = unit.resilience - (unit.stress + tau * neighbor_flux)
    return max(0.0, req + eps)


def apply_pulse(
    state: SystemState,
    unit_id: str,
    neighbor_flux: float = 0.0,
    tau: float = DEFAULT_PULSE_TAU,
    eps: float = DEFAULT_PULSE_EPS,
) -> SystemState:
    """Compute and apply the optimal pulse to ``unit_id``.

    The target's stress becomes ``min(1, stress + pulse)`` and its state
    ``COLLAPSED`` if that reaches its resilience, else ``STRESSED``.  The
    pulse is recorded in ``last_pulse_intensity``.

    Collapsed or unknown targets return ``state`` unchanged.
    """
    target = state.unit(unit_id)
    if target is None or target.state == STATE_COLLAPSED:
        return state

    pulse = optimize_pulse(target, neighbor_flux, tau, eps)
    s_upd = min(1.0, target.stress + pulse)
    new_state = STATE_COLLAPSED if s_upd >= target.resilience else STATE_STRESSED

    pulsed = replace_unit(state, unit_id, stress=s_upd, state=new_state)
    return replace(pulsed, last_pulse_intensity=pulse)
