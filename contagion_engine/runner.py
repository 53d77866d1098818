"""
Runner script for the contagion engine.

Loads a JSON scenario (or the built-in supply-chain scenario), optionally
pulses one unit, then advances the simulation a fixed number of steps with an
optional news shock every few steps.  Optionally runs a Monte Carlo
experiment and a transmission-factor sweep from the same starting snapshot.

Usage
-----
    python runner.py [scenario.json] [--steps 10] [--news-every 3]
                     [--pulse UNIT_ID] [--trials 200] [--sensitivity]
                     [--output-dir results/]

Outputs: final_state.csv, summary.json, config_snapshot.json (with SHA-256
hash), and with ``--trials`` monte_carlo_summary.json plus, with
``--sensitivity``, sensitivity_results.csv.
"""

from __future__ import annotations

import argparse
import csv
import hashlib
import json
import sys
import time
from pathlib import Path

from .config import build_rng, default_scenario, load_config, state_from_config
from .intel import apply_event, simulate_news
from .masking import generate_deception, mask_state
from .metrics import collapse_summary, pulse_cost_ranking
from .monte_carlo import run_monte_carlo
from .optimizer import apply_pulse
from .propagation import propagation_step
from .sensitivity import sensitivity_to_records, transmission_sensitivity
from .state import SystemState


DEFAULT_SWEEP_TAUS = [0.0, 0.05, 0.1, 0.15, 0.25, 0.5, 0.75, 1.0]


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Contagion engine — stress propagation runner."
    )
    parser.add_argument(
        "config",
        nargs="?",
        default=None,
        help="Path to JSON scenario file (default: built-in supply chain).",
    )
    parser.add_argument("--steps", type=int, default=10,
                        help="Propagation steps to run (default: 10).")
    parser.add_argument("--news-every", type=int, default=0,
                        help="Inject a news shock every N steps (0 disables).")
    parser.add_argument("--pulse", default=None,
                        help="Unit id to pulse before propagation.")
    parser.add_argument("--trials", type=int, default=0,
                        help="Monte Carlo trials (0 disables).")
    parser.add_argument("--sensitivity", action="store_true",
                        help="Also sweep the transmission factor (needs --trials).")
    parser.add_argument(
        "--output-dir",
        default="results",
        help="Directory for output files (default: results/).",
    )
    args = parser.parse_args(argv)
    if args.steps < 0:
        parser.error("--steps must be >= 0")
    if args.trials == 1 or args.trials < 0:
        parser.error("--trials must be 0 (disabled) or >= 2")
    if args.sensitivity and args.trials == 0:
        parser.error("--sensitivity requires --trials")
    return args


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------


def _ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _write_csv(path: Path, fieldnames: list[str], rows: list[dict]) -> None:
    with path.open("w", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)


def _config_hash(cfg: dict) -> str:
    """SHA-256 of the JSON-serialised config, for reproducibility."""
    serialised = json.dumps(cfg, sort_keys=True).encode("utf-8")
    return hashlib.sha256(serialised).hexdigest()


def _save_config_snapshot(output_dir: Path, cfg: dict) -> None:
    snapshot = {
        "config": cfg,
        "sha256": _config_hash(cfg),
    }
    (output_dir / "config_snapshot.json").write_text(json.dumps(snapshot, indent=2))


def _unit_rows(state: SystemState) -> list[dict]:
    return [
        {
            "unit_id": u.id,
            "state": u.state,
            "stress": round(u.stress, 6),
            "reported_stress": round(generate_deception(u.stress), 6),
            "perceived_morale": round(u.model_of_self.perceived_morale, 6),
            "resilience": u.resilience,
        }
        for u in state.units
    ]


# ---------------------------------------------------------------------------
# Simulation session
# ---------------------------------------------------------------------------


def _run_session(
    state: SystemState,
    steps: int,
    news_every: int,
    rng,
) -> SystemState:
    """Advance ``state`` by ``steps`` steps, ingesting news on schedule."""
    targets = [u.id for u in state.units]
    for step in range(1, steps + 1):
        if news_every > 0 and step % news_every == 0:
            event = simulate_news(rng, targets=targets)
            state = apply_event(state, event)
            print(f"[INTEL] {event.source}: {event.headline.upper()} "
                  f"-> {event.impact_node_id} (+{event.stress_impact:.4f})")
        state = propagation_step(state, rng)
    return mask_state(state)


def _print_summary(state: SystemState, steps: int, elapsed: float) -> None:
    summary = collapse_summary(state)
    n = summary["n_units"]
    sep = "-" * 58
    print(sep)
    print("  Contagion Engine — Stress Propagation")
    print(sep)
    print(f"  Units        : {n}")
    print(f"  Steps        : {steps}")
    print(f"  Elapsed      : {elapsed:.4f}s")
    print()
    print(f"  Collapsed    : {summary['n_collapsed']} / {n}")
    print(f"  Stressed     : {summary['n_stressed']} / {n}")
    print(f"  Stable       : {summary['n_stable']} / {n}")
    print(f"  Mean stress  : {summary['mean_stress']:.4f}")
    print()
    print(f"  {'Unit':<18}  {'State':<10}  {'Stress':>7}  {'Morale':>7}")
    for u in state.units:
        print(f"  {u.id:<18}  {u.state:<10}  {u.stress:>7.4f}  "
              f"{u.model_of_self.perceived_morale:>7.4f}")
    print(sep)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    output_dir = Path(args.output_dir)
    _ensure_dir(output_dir)

    cfg = load_config(args.config) if args.config else default_scenario()
    _save_config_snapshot(output_dir, cfg)

    state = state_from_config(cfg)
    rng = build_rng(cfg)

    if args.pulse is not None:
        if state.unit(args.pulse) is None:
            print(f"ERROR: Unknown unit id {args.pulse!r}.")
            sys.exit(1)
        state = apply_pulse(state, args.pulse)
        print(f"[PULSE] Targeting {args.pulse}. "
              f"Pulse intensity: {state.last_pulse_intensity:.4f}")

    initial = state
    t0 = time.perf_counter()
    final = _run_session(state, args.steps, args.news_every, rng)
    elapsed = time.perf_counter() - t0

    _write_csv(
        output_dir / "final_state.csv",
        ["unit_id", "state", "stress", "reported_stress", "perceived_morale",
         "resilience"],
        _unit_rows(final),
    )
    (output_dir / "summary.json").write_text(
        json.dumps(
            {
                "steps": args.steps,
                "news_every": args.news_every,
                "pulse_target": args.pulse,
                "last_pulse_intensity": final.last_pulse_intensity,
                "elapsed_seconds": elapsed,
                "collapse_summary": collapse_summary(final),
                "pulse_cost_ranking": pulse_cost_ranking(final),
                "config_sha256": _config_hash(cfg),
            },
            indent=2,
        )
    )
    _print_summary(final, args.steps, elapsed)

    if args.trials > 0:
        seed = int(cfg["seed"])
        print(f"[Monte Carlo] trials={args.trials} | steps={args.steps}")
        mc = run_monte_carlo(initial, steps=args.steps, trials=args.trials, seed=seed)
        (output_dir / "monte_carlo_summary.json").write_text(
            json.dumps(mc.summary_dict(), indent=2)
        )
        print(f"  Mean collapse fraction : {mc.mean_collapse_fraction:.4f} "
              f"(95% CI {mc.ci_low:.4f} – {mc.ci_high:.4f})")

        if args.sensitivity:
            # Offset keeps the sweep's seed tree apart from the MC tree above.
            points = transmission_sensitivity(
                initial, DEFAULT_SWEEP_TAUS,
                steps=args.steps, trials=args.trials, seed=seed + 10_000_000,
            )
            _write_csv(
                output_dir / "sensitivity_results.csv",
                ["tau", "mean_collapse_fraction", "std_collapse_fraction",
                 "ci_95_low", "ci_95_high", "n_trials", "steps"],
                sensitivity_to_records(points),
            )
            print("[Sensitivity] Wrote sensitivity_results.csv")

    print(f"  Results saved to : {output_dir.resolve()}")


if __name__ == "__main__":
    main()
