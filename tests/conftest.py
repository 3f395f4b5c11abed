"""Shared pytest fixtures for the DynamicSurvEVAL tests."""

import numpy as np
import pytest


@pytest.fixture
def synthetic_data():
    """Weibull event times with log-normal censoring, and random monotone survival curves."""
    rng = np.random.default_rng(42)
    n_data = 300
    event_times = rng.weibull(a=1, size=n_data).round(1) + 0.1
    censoring_times = rng.lognormal(mean=1, sigma=1, size=n_data).round(1) + 0.1
    event_indicators = event_times < censoring_times
    observed_times = np.minimum(event_times, censoring_times)

    n_times = 100
    time_grid = np.linspace(1, 5, n_times)
    predictions = rng.random((n_data, n_times))
    # normalize the predictions to sum to 1, meaning the probability mass function
    pmf = predictions / predictions.sum(axis=1)[:, None]
    survival_curves = 1 - np.cumsum(pmf, axis=1)

    return {
        "observed_times": observed_times,
        "event_indicators": event_indicators,
        "time_grid": time_grid,
        "survival_curves": np.clip(survival_curves, 0, 1),
    }


@pytest.fixture
def four_observations():
    """(observed_time, event) = (2, True), (5, False), (3, True), (6, False)."""
    return np.array([2., 5., 3., 6.]), np.array([True, False, True, False])
