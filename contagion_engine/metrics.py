"""
Snapshot metrics for the contagion engine.

Provides:
  - collapse_summary()    : per-state counts and fractions, stress statistics
  - pulse_cost_ranking()  : units ordered by the pulse needed to tip them
  - contagion_reach()     : units a collapse could eventually reach
"""

from __future__ import annotations

import networkx as nx
import numpy as np

from .graph import adjacency_for, to_multigraph
from .optimizer import DEFAULT_PULSE_EPS, DEFAULT_PULSE_TAU, optimize_pulse
from .propagation import collapsed_flux
from .state import (
    STATE_COLLAPSED,
    STATE_STABLE,
    STATE_STRESSED,
    SystemState,
    unit_index,
)


# ---------------------------------------------------------------------------
# Collapse summary
# ---------------------------------------------------------------------------


def collapse_summary(state: SystemState) -> dict:
    """Summarise a snapshot.

    Returns
    -------
    dict with keys:
        - ``n_units``, ``n_stable``, ``n_stressed``, ``n_collapsed``
        - ``frac_collapsed``, ``frac_affected`` (stressed + collapsed)
        - ``mean_stress``, ``max_stress``
    """
    n = len(state.units)
    labels = [u.state for u in state.units]
    n_collapsed = labels.count(STATE_COLLAPSED)
    n_stressed = labels.count(STATE_STRESSED)
    stress = np.array([u.stress for u in state.units], dtype=np.float64)
    return {
        "n_units": n,
        "n_stable": labels.count(STATE_STABLE),
        "n_stressed": n_stressed,
        "n_collapsed": n_collapsed,
        "frac_collapsed": n_collapsed / n if n else 0.0,
        "frac_affected": (n_collapsed + n_stressed) / n if n else 0.0,
        "mean_stress": float(np.mean(stress)) if n else 0.0,
        "max_stress": float(np.max(stress)) if n else 0.0,
    }


# ---------------------------------------------------------------------------
# Pulse targeting
# ---------------------------------------------------------------------------


def pulse_cost_ranking(
    state: SystemState,
    tau: float = DEFAULT_PULSE_TAU,
    eps: float = DEFAULT_PULSE_EPS,
) -> list[dict]:
    """Rank non-collapsed units by the pulse required to tip them.

    Each unit's current collapsed flux is passed to ``optimize_pulse``.  Ties
    are broken by higher degree first, then by id, so the ordering is
    deterministic.

    Returns
    -------
    list of dict
        Keys ``unit_id``, ``pulse``, ``neighbor_flux``, ``degree``; cheapest
        target first.
    """
    adj = adjacency_for(state.connections)
    index = unit_index(state.units)
    rows = []
    for u in state.units:
        if u.state == STATE_COLLAPSED:
            continue
        flux = collapsed_flux(u.id, adj, index)
        rows.append({
            "unit_id": u.id,
            "pulse": optimize_pulse(u, flux, tau, eps),
            "neighbor_flux": flux,
            "degree": len(adj.get(u.id, ())),
        })
    rows.sort(key=lambda r: (r["pulse"], -r["degree"], r["unit_id"]))
    return rows


# ---------------------------------------------------------------------------
# Reach
# ---------------------------------------------------------------------------


def contagion_reach(state: SystemState, unit_id: str) -> set[str]:
    """Known unit ids connected to ``unit_id``, excluding itself.

    Raises
    ------
    ValueError
        If ``unit_id`` is not a unit of ``state``.
    """
    if state.unit(unit_id) is None:
        raise ValueError(f"Unknown unit id {unit_id!r}.")
    known = {u.id for u in state.units}
    # Unknown ids never collapse, so contagion cannot pass through them.
    edges = [e for e in state.connections if e[0] in known and e[1] in known]
    G = to_multigraph(edges, nodes=known)
    return set(nx.node_connected_component(G, unit_id)) - {unit_id}
