"""
Disclosure masking for display values.

Reported stress equals true stress up to a disclosure threshold delta.  Above
it the excess is compressed logarithmically so the reported value approaches
1 without revealing how far past delta the true value is:

    reported = delta + range * log(1 + alpha*(sigma - delta)) / log(1 + alpha*range)

with ``range = 1 - delta``.  These transforms feed displays only and are never
read back by propagation.
"""

from __future__ import annotations

import math
from dataclasses import replace

from .propagation import clamp01
from .state import SystemState, Unit


DEFAULT_DISCLOSURE_THRESHOLD: float = 0.7
DEFAULT_COMPRESSION: float = 8.0


def generate_deception(
    sigma: float,
    delta: float = DEFAULT_DISCLOSURE_THRESHOLD,
    alpha: float = DEFAULT_COMPRESSION,
) -> float:
    """Map true stress ``sigma`` to a reported value in [0, 1].

    Identity for ``sigma <= delta``; monotonic logarithmic compression above.
    A degenerate curve (``alpha <= 0`` or ``delta >= 1``) falls back to the
    clamped identity.
    """
    if sigma <= delta:
        return sigma
    rng = 1.0 - delta
    if alpha <= 0.0 or rng <= 0.0:
        return clamp01(sigma)
    comp = math.log(1.0 + alpha * (sigma - delta)) / math.log(1.0 + alpha * rng)
    return clamp01(delta + comp * rng)


def perceived_morale(
    unit: Unit,
    delta: float = DEFAULT_DISCLOSURE_THRESHOLD,
    alpha: float = DEFAULT_COMPRESSION,
) -> float:
    """Morale a unit reports: one minus its masked stress."""
    return 1.0 - generate_deception(unit.stress, delta, alpha)


def mask_state(
    state: SystemState,
    delta: float = DEFAULT_DISCLOSURE_THRESHOLD,
    alpha: float = DEFAULT_COMPRESSION,
) -> SystemState:
    """Refresh every unit's ``model_of_self.perceived_morale``.

    Stress, state and ``is_detected`` are left untouched.
    """
    return state.with_units(
        replace(
            u,
            model_of_self=replace(
                u.model_of_self,
                perceived_morale=perceived_morale(u, delta, alpha),
            ),
        )
        for u in state.units
    )
