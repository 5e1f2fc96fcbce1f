# ---
# jupyter:
#   jupytext:
#     formats: ipynb,py:percent
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#       jupytext_version: 1.18.1
#   kernelspec:
#     display_name: animovement
#     language: python
#     name: python3
# ---

# %% [markdown]
# # Behavioral Segmentation of a GPS Track
#
# This notebook walks through the full animovement workflow on a simulated
# track: loading a Movebank-style file, reprojecting it, deriving steps and
# turning angles, and segmenting behavior with First Passage Time, a
# two-state Hidden Markov Model and Behavioral Change Point Analysis.
#
# **Estimated time**: 10 minutes
#
# ## Learning Objectives
#
# By the end of this notebook, you will be able to:
#
# - Load and reproject a track with an explicit `ProjectionConfig`
# - Build the per-fix step table
# - Read a log-FPT variance curve and choose a radius
# - Fit and compare HMMs with and without a transition covariate
# - Summarize a BCPA window sweep as smooth and flat change points
#
# ## References
#
# - **FPT**: Fauchald & Tveraa (2003). *Ecology*, 84(2), 282-288.
# - **HMM**: Michelot, Langrock & Patterson (2016). moveHMM. *Methods Ecol. Evol.*
# - **BCPA**: Gurarie, Andrews & Laidre (2009). *Ecology Letters*, 12(5), 395-408.

# %%
import tempfile
from pathlib import Path

import numpy as np
import pandas as pd
from pyproj import Transformer

from animovement import ProjectionConfig
from animovement.behavior.bcpa import window_sweep
from animovement.behavior.fpt import first_passage_time
from animovement.behavior.hmm import HMMParameters, compare_models, fit_hmm, simulate_hmm
from animovement.behavior.trajectory import compute_steps, track_summary
from animovement.io import read_track, write_table

# %% [markdown]
# ## Part 1: Simulate a Track and Write It in Movebank Format
#
# We simulate 400 hourly steps from a two-state movement model ("encamped"
# with short, tortuous steps; "exploratory" with long, directed steps), turn
# them into positions in UTM zone 36 south, and convert back to longitude and
# latitude so that the file looks like a real export.

# %%
true_params = HMMParameters(
    step_mean=[80.0, 900.0],
    step_sd=[60.0, 400.0],
    angle_mean=[np.pi, 0.0],
    angle_concentration=[0.7, 4.0],
    beta=[[-3.0, -3.0]],
)
step, angle, true_states = simulate_hmm(true_params, 400, rng=42)

heading = np.cumsum(angle)
x = 500_000 + np.concatenate([[0.0], np.cumsum(step * np.cos(heading))])
y = 7_500_000 + np.concatenate([[0.0], np.cumsum(step * np.sin(heading))])

projection = ProjectionConfig(utm_zone=36, hemisphere="south")
to_geographic = Transformer.from_crs(projection.to_crs(), "EPSG:4326", always_xy=True)
lon, lat = to_geographic.transform(x, y)

raw = pd.DataFrame(
    {
        "timestamp": pd.date_range("2021-03-01", periods=len(x), freq="h"),
        "location-long": lon,
        "location-lat": lat,
        "individual-local-identifier": "buffalo-1",
        "tag-local-identifier": "tag-17",
    }
)
workdir = Path(tempfile.mkdtemp())
raw.to_csv(workdir / "buffalo.tsv", sep="\t", index=False)

# %% [markdown]
# ## Part 2: Load, Reproject and Derive Steps
#
# The projection is configuration supplied by the analyst; it is never
# guessed from the coordinates.

# %%
track = read_track(workdir / "buffalo.tsv", projection=projection)
print(track_summary(track))

steps = compute_steps(track)
print(steps[["step", "angle", "dt", "speed", "persistence"]].describe())

# %% [markdown]
# ## Part 3: First Passage Time
#
# The radius with the largest variance of log-FPT is a candidate scale of
# area-restricted search. The choice remains yours; the curve is the guide.

# %%
radii = np.geomspace(50, 5000, 15)
fpt = first_passage_time(steps[["x", "y"]].to_numpy(), steps["timestamp"], radii)
print(fpt.to_dataframe())
print(f"Largest log-FPT variance at r = {fpt.characteristic_radius:.0f} m")

# %% [markdown]
# ## Part 4: Hidden Markov Model
#
# Starting values matter: the optimizer finds the optimum nearest to them.
# We fit a model with constant transitions and one where the switching
# probabilities depend on the hour of day, then compare them by AIC.

# %%
initial = HMMParameters(
    step_mean=[100.0, 1000.0],
    step_sd=[100.0, 1000.0],
    angle_mean=[np.pi, 0.0],
    angle_concentration=[1.0, 1.0],
)
fit_constant = fit_hmm(steps["step"], steps["angle"], initial)

hour = steps["timestamp"].dt.hour.to_numpy()
daily = np.column_stack([np.cos(2 * np.pi * hour / 24), np.sin(2 * np.pi * hour / 24)])
fit_daily = fit_hmm(steps["step"], steps["angle"], initial, covariates=daily)

print(fit_constant.parameters.to_dataframe())
print(compare_models({"constant": fit_constant, "time of day": fit_daily}))

states = fit_constant.viterbi()
agreement = np.mean(states[:-1] == true_states)
print(f"Decoded states agree with the simulation for {max(agreement, 1 - agreement):.0%}")

# %% [markdown]
# ## Part 5: Behavioral Change Point Analysis
#
# BCPA sweeps a window along velocity persistence. `K` penalizes extra
# parameters (2 ~ AIC); `clusterwidth` and `threshold` control how window
# break points are merged into a flat set of change points.

# %%
sweep = window_sweep(
    steps["persistence"], steps["timestamp"], window_size=40, window_step=2, K=2.0
)
smooth = sweep.smooth_summary()
flat = sweep.change_point_summary(clusterwidth=6, threshold=3)
print(flat.breaks)
print(flat.phases)

# %% [markdown]
# ## Part 6: Save Results

# %%
write_table(steps.assign(state=states), workdir / "steps_with_states.csv")
write_table(fpt, workdir / "fpt_variance.csv")
write_table(smooth, workdir / "bcpa_smooth.csv")
write_table(flat.phases, workdir / "bcpa_phases.csv")
print(sorted(p.name for p in workdir.iterdir()))
