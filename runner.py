"""Command-line entrypoint at the repository root.

    python runner.py [scenario] [--steps N] [--pulse UNIT_ID] ...

``scenario`` may be a path, a file inside ``contagion_engine/``, or the short
name of a bundled scenario (``supply_chain``, ``two_unit``).
"""

from __future__ import annotations

import sys
from pathlib import Path

from contagion_engine.runner import main

SCENARIO_DIR = Path("contagion_engine")


def _scenario_candidates(name: str) -> list[Path]:
    stem = Path(name)
    return [
        SCENARIO_DIR / stem,
        SCENARIO_DIR / f"config_{stem}.json",
    ]


def resolve_scenario_argv(argv: list[str]) -> list[str]:
    """Return ``argv`` with its scenario argument pointed at an existing file.

    Options are left alone, as is any argument that already names a file or
    matches no bundled scenario.
    """
    if len(argv) < 2 or argv[1].startswith("-") or Path(argv[1]).exists():
        return argv
    found = next((p for p in _scenario_candidates(argv[1]) if p.is_file()), None)
    if found is None:
        return argv
    return [argv[0], str(found), *argv[2:]]


if __name__ == "__main__":
    main(resolve_scenario_argv(sys.argv)[1:])
