"""
Immutable data model for the contagion engine.

Every engine operation consumes one ``SystemState`` snapshot and returns a new
one.  Records are frozen dataclasses; updates go through
``dataclasses.replace`` so a reader holding an older snapshot never observes a
partial update.

State encoding
--------------
    STABLE    = stress at or below half the unit's resilience
    STRESSED  = stress above half the unit's resilience
    COLLAPSED = terminal, absorbing
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping, Sequence, Union


# ---------------------------------------------------------------------------
# State constants
# ---------------------------------------------------------------------------

STATE_STABLE: str = "STABLE"
STATE_STRESSED: str = "STRESSED"
STATE_COLLAPSED: str = "COLLAPSED"

UNIT_STATES = (STATE_STABLE, STATE_STRESSED, STATE_COLLAPSED)

# Stress above this fraction of resilience labels a unit STRESSED.
STRESSED_FRACTION: float = 0.5


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_TRANSMISSION_FACTOR: float = 0.15
DEFAULT_DECAY_RATE: float = 0.05
DEFAULT_COLLAPSE_SHARPNESS: float = 10.0


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

Edge = Union[tuple[str, str], tuple[str, str, float]]
Position = tuple[float, float, float]


@dataclass(frozen=True)
class ModelOfSelf:
    """Display-side view a unit holds of itself.

    ``perceived_morale`` is never read by propagation.  ``is_detected`` is
    reserved for host collaborators and untouched by every core operation.
    """
    perceived_morale: float = 1.0
    is_detected: bool = False


@dataclass(frozen=True)
class Unit:
    """A node in the dependency network.

    Attributes
    ----------
    id : str
        Stable unique key.
    resilience : float
        phi in [0, 1]; fixed at creation.
    stress : float
        sigma in [0, 1].
    state : str
        One of ``UNIT_STATES``.  ``COLLAPSED`` is absorbing.
    model_of_self : ModelOfSelf
        Display-only self model.
    position : tuple of float
        3-D coordinate for renderers.
    """
    id: str
    resilience: float
    stress: float = 0.0
    state: str = STATE_STABLE
    model_of_self: ModelOfSelf = field(default_factory=ModelOfSelf)
    position: Position = (0.0, 0.0, 0.0)

    @property
    def collapsed(self) -> bool:
        return self.state == STATE_COLLAPSED


@dataclass(frozen=True)
class SystemState:
    """Aggregate snapshot: units, edges and global dynamics parameters."""
    units: tuple[Unit, ...]
    connections: tuple[Edge, ...] = ()
    global_transmission_factor: float = DEFAULT_TRANSMISSION_FACTOR
    decay_rate: float = DEFAULT_DECAY_RATE
    collapse_sharpness: float = DEFAULT_COLLAPSE_SHARPNESS
    last_pulse_intensity: float = 0.0

    def __post_init__(self) -> None:
        # Accept lists from callers but always store hashable tuples so the
        # snapshot is immutable and the adjacency cache can key on edges.
        object.__setattr__(self, "units", tuple(self.units))
        object.__setattr__(
            self, "connections", tuple(tuple(e) for e in self.connections)
        )

    def unit(self, unit_id: str) -> Unit | None:
        """Return the unit with ``unit_id`` or ``None``."""
        for u in self.units:
            if u.id == unit_id:
                return u
        return None

    def with_units(self, units: Sequence[Unit]) -> "SystemState":
        return replace(self, units=tuple(units))


@dataclass(frozen=True)
class NewsEvent:
    """Exogenous shock produced by the intelligence generator.

    Value object with no lifecycle: created once, applied once, discarded.
    """
    id: str
    timestamp: int
    source: str
    headline: str
    impact_node_id: str
    stress_impact: float
    persistence: float = 1.0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def classify_stress(stress: float, resilience: float) -> str:
    """Non-terminal label for a unit: STRESSED above half its resilience."""
    if stress > resilience * STRESSED_FRACTION:
        return STATE_STRESSED
    return STATE_STABLE


def unit_index(units: Sequence[Unit]) -> Mapping[str, Unit]:
    """Map unit id -> unit.  Later duplicates win, matching dict semantics."""
    return {u.id: u for u in units}


def replace_unit(snapshot: SystemState, unit_id: str, /, **changes) -> SystemState:
    """Return a new snapshot where the unit ``unit_id`` has ``changes`` applied.

    Units other than the target are carried over by reference.  If no unit
    matches, the returned snapshot is equal to the input.
    """
    return snapshot.with_units(
        replace(u, **changes) if u.id == unit_id else u for u in snapshot.units
    )
