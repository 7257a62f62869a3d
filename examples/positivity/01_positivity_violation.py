"""
Positivity violation: biased IPTW estimates
===========================================
Units with z ≥ 0.5 can never be exposed. The propensity model cannot
recover that hard cutoff, so it hands them small but non-zero scores and
they enter the weighted comparison as controls with no treated
counterparts. Restricting to the eligible population removes most of the
bias; the ineligible stratum has no comparison at all.
"""

import logging

import matplotlib.pyplot as plt

from positivity import SimulationConfig, run_analysis

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

TRUE_ATE = 1.0

# ── 1. Simulate, fit, weight ──────────────────────────────────────────────────
analysis = run_analysis(SimulationConfig(n=100, seed=5))
df = analysis.data

# ── 2. Propensity score distributions ─────────────────────────────────────────
fig = analysis.figure()
fig.savefig("propensity_histograms.png", dpi=150, bbox_inches="tight")
plt.close(fig)

# ── 3. Effects overall and by eligibility ─────────────────────────────────────
print(analysis.result.summary())
print(analysis.summary())
print(f"True ATE            : {TRUE_ATE:.4f}")

# ── 4. Diagnostics ────────────────────────────────────────────────────────────
print(analysis.result.diagnose(df, by="in_population").summary())
print(analysis.result.refute(df).summary())
