"""
Intelligence feed: exogenous shock generation and ingestion.

``simulate_news`` samples a source, headline, target unit and stress impact
independently and uniformly.  ``inject_event`` adds the impact to the target's
stress without touching its state label; ``apply_event`` additionally
re-derives the label with a hard threshold, which is how a host ingesting the
periodic feed updates its snapshot.
"""

from __future__ import annotations

import time
from dataclasses import replace
from typing import Callable, Sequence

from numpy.random import Generator, default_rng

from .propagation import clamp01
from .state import (
    STATE_COLLAPSED,
    NewsEvent,
    SystemState,
    classify_stress,
    replace_unit,
)


# ---------------------------------------------------------------------------
# Feed vocabulary
# ---------------------------------------------------------------------------

NEWS_SOURCES: tuple[str, ...] = (
    "REUTERS", "BLOOMBERG", "WSJ", "AP", "AL JAZEERA", "NIKKEI",
)

NEWS_HEADLINES: tuple[str, ...] = (
    "Supply chain bottleneck: Logistics alert issued",
    "Advanced chip demand hits record highs",
    "Cyber-sec breach at assembly node",
    "Trade tensions ignite energy price concerns",
    "Regulatory audit impacts autonomous segments",
    "Logistics strike: International shipping delays",
    "Manufacturing zone hit by weather anomaly",
    "Lithography breakthrough announced",
    "Logistics network signal spikes detected",
)

DEFAULT_TARGETS: tuple[str, ...] = (
    "TSMC-FAB-18", "ASML-LITHO", "NVIDIA-CORP",
    "APPLE-GLOBAL", "AWS-CLOUDS", "FOXCONN-ASSEMBLY",
)

IMPACT_LOW: float = 0.05
IMPACT_HIGH: float = 0.20

_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_ID_LENGTH = 6


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def _event_id(rng: Generator) -> str:
    idx = rng.integers(0, len(_ID_ALPHABET), size=_ID_LENGTH)
    return "".join(_ID_ALPHABET[i] for i in idx)


def simulate_news(
    rng: Generator | None = None,
    targets: Sequence[str] | None = None,
    clock: Callable[[], float] | None = None,
) -> NewsEvent:
    """Sample one exogenous shock event.

    Parameters
    ----------
    rng : Generator or None, optional
        Seeded numpy Generator.  ``None`` draws from system entropy.
    targets : sequence of str or None, optional
        Candidate unit ids.  Defaults to ``DEFAULT_TARGETS``.
    clock : callable or None, optional
        Returns the current time in seconds.  Defaults to ``time.time``.

    Returns
    -------
    NewsEvent
        ``stress_impact`` uniform in [0.05, 0.20), ``persistence`` 1.0,
        ``timestamp`` in milliseconds.

    Raises
    ------
    ValueError
        If ``targets`` is empty.
    """
    if rng is None:
        rng = default_rng()
    if targets is None:
        targets = DEFAULT_TARGETS
    if len(targets) == 0:
        raise ValueError("targets must contain at least one unit id.")
    if clock is None:
        clock = time.time

    return NewsEvent(
        id=_event_id(rng),
        timestamp=int(clock() * 1000),
        source=NEWS_SOURCES[int(rng.integers(len(NEWS_SOURCES)))],
        headline=NEWS_HEADLINES[int(rng.integers(len(NEWS_HEADLINES)))],
        impact_node_id=targets[int(rng.integers(len(targets)))],
        stress_impact=float(rng.uniform(IMPACT_LOW, IMPACT_HIGH)),
        persistence=1.0,
    )


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


def inject_event(state: SystemState, event: NewsEvent) -> SystemState:
    """Add ``stress_impact * persistence`` to the target unit's stress.

    Stress is clamped to [0, 1].  The target's state label is not
    recomputed, no other unit is touched, and collapsed targets are left
    as they are.
    """
    delta = event.stress_impact * event.persistence
    return state.with_units(
        replace(u, stress=clamp01(u.stress + delta))
        if u.id == event.impact_node_id and u.state != STATE_COLLAPSED
        else u
        for u in state.units
    )


def apply_event(state: SystemState, event: NewsEvent) -> SystemState:
    """Inject ``event`` and re-derive the target's state label.

    The target collapses when its new stress strictly exceeds its
    resilience; otherwise it is STRESSED or STABLE by the usual half-
    resilience rule.
    """
    injected = inject_event(state, event)
    target = injected.unit(event.impact_node_id)
    if target is None or target.state == STATE_COLLAPSED:
        return injected
    if target.stress > target.resilience:
        new_state = STATE_COLLAPSED
    else:
        new_state = classify_stress(target.stress, target.resilience)
    return replace_unit(injected, target.id, state=new_state)
