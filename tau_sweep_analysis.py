"""Sweep the global transmission factor and plot the collapse response.

    python tau_sweep_analysis.py [scenario.json]

Runs a Monte Carlo experiment per tau on the chosen scenario (default: the
built-in supply chain) and saves tau_sweep_results.png.
"""

import sys

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from contagion_engine.config import default_scenario, load_config, state_from_config
from contagion_engine.sensitivity import transmission_sensitivity

# Configuration
TAU_VALUES = [0.0, 0.05, 0.1, 0.15, 0.2, 0.3, 0.5, 0.75, 1.0]
STEPS = 20
TRIALS = 200
OUTPUT_PNG = "tau_sweep_results.png"

cfg = load_config(sys.argv[1]) if len(sys.argv) > 1 else default_scenario()
state = state_from_config(cfg)

points = transmission_sensitivity(
    state, TAU_VALUES, steps=STEPS, trials=TRIALS, seed=int(cfg["seed"])
)

print(f"{'tau':<8} | {'Mean collapse':<15} | {'95% CI':<20}")
print("-" * 50)
for p in points:
    ci = f"[{p.ci_low:.4f}, {p.ci_high:.4f}]"
    print(f"{p.tau:<8.2f} | {p.mean_collapse_fraction:<15.4f} | {ci:<20}")

taus = [p.tau for p in points]
means = [p.mean_collapse_fraction for p in points]
lows = [p.ci_low for p in points]
highs = [p.ci_high for p in points]

plt.figure(figsize=(7, 5))
plt.plot(taus, means, marker="o", color="red")
plt.fill_between(taus, lows, highs, color="red", alpha=0.2)
plt.title(f"Collapse fraction after {STEPS} steps")
plt.xlabel("Transmission factor (tau)")
plt.ylabel("Mean collapse fraction")
plt.grid(True)
plt.tight_layout()
plt.savefig(OUTPUT_PNG)
print(f"Saved {OUTPUT_PNG}")
