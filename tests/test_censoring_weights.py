import numpy as np
import pytest
from lifelines import KaplanMeierFitter

from DynamicSurvEVAL.Evaluations.BinaryOutcome import OutcomeLabel
from DynamicSurvEVAL.Evaluations.CensoringWeights import (CensoringDistribution, ipcw_weights, outcome_weights,
                                                          resolve_censoring)
from DynamicSurvEVAL.NonparametricEstimator.SingleEvent import NelsonAalen


def test_no_censoring_gives_unit_weights():
    times = np.array([1., 2., 3., 4.])
    events = np.ones(4)
    censoring = CensoringDistribution().fit(times, events)
    weights = ipcw_weights(times, events, np.array([0.5, 2.5, 10.]), censoring)
    np.testing.assert_allclose(weights, np.ones((4, 3)))


def test_event_weight_uses_left_limit_of_censoring_survival():
    # a censoring and an event tie at time 2
    times = np.array([1., 2., 2., 3.])
    events = np.array([1, 0, 1, 0])
    censoring = CensoringDistribution("KaplanMeier").fit(times, events)
    np.testing.assert_allclose(censoring.survival([1., 2., 2.5]), [1., 2 / 3, 2 / 3])
    np.testing.assert_allclose(censoring.survival_left([2.]), [1.])

    labels, weights = outcome_weights(times, events, 2.5, censoring)
    np.testing.assert_array_equal(labels, [OutcomeLabel.EVENT, OutcomeLabel.INDETERMINATE,
                                           OutcomeLabel.EVENT, OutcomeLabel.NON_EVENT])
    np.testing.assert_allclose(weights[[0, 2, 3]], [1., 1., 1.5])
    assert np.isnan(weights[1])


def test_zero_censoring_survival_gives_undefined_weight():
    train_times = np.array([1., 2.])
    train_events = np.array([0, 0])
    censoring = CensoringDistribution().fit(train_times, train_events)
    assert censoring.survival([2.])[0] == 0

    with pytest.warns(UserWarning, match="undefined"):
        labels, weights = outcome_weights(np.array([5., 0.5]), np.array([1, 1]), 2., censoring)
    assert labels[0] == OutcomeLabel.NON_EVENT
    assert np.isnan(weights[0])
    assert weights[1] == 1.


def test_times_past_the_censoring_reference_are_undefined():
    # the training sample ends with an event, so G stays positive up to time 4
    train_times = np.array([1., 2., 3., 4.])
    train_events = np.array([1, 0, 1, 1])
    censoring = CensoringDistribution().fit(train_times, train_events)
    assert censoring.max_time == 4.
    assert censoring.survival([4.])[0] == pytest.approx(2 / 3)
    assert np.isnan(censoring.survival([4.5])[0])

    with pytest.warns(UserWarning, match="undefined"):
        weights = ipcw_weights(np.array([6., 5., 1.]), np.array([0, 1, 1]), np.array([3., 4.5]), censoring)
    np.testing.assert_allclose(weights[:, 0], [1.5, 1.5, 1.])
    # both non-events at 4.5 need G(4.5), past the last censoring reference time
    assert np.isnan(weights[0, 1]) and np.isnan(weights[1, 1])
    assert weights[2, 1] == 1.


def test_injected_callable_strategy():
    censoring = CensoringDistribution(lambda s: np.exp(-np.asarray(s) / 10))
    assert censoring.is_fitted
    times = np.array([2., 8.])
    events = np.array([1, 1])
    weights = ipcw_weights(times, events, 5., censoring)
    np.testing.assert_allclose(weights, [np.exp(0.2), np.exp(0.5)])


def test_lifelines_fitter_as_strategy_matches_builtin_for_non_events():
    rng = np.random.default_rng(3)
    times = rng.exponential(5, size=200).round(2) + 0.01
    events = rng.binomial(1, 0.6, size=200)
    kmf = KaplanMeierFitter().fit(times, 1 - events)

    injected = CensoringDistribution(lambda s: kmf.survival_function_at_times(s).values)
    builtin = CensoringDistribution("KaplanMeier").fit(times, events)
    targets = np.array([1., 3., 6.])

    labels, w_injected = outcome_weights(times, events, targets, injected)
    _, w_builtin = outcome_weights(times, events, targets, builtin)
    non_event = labels == OutcomeLabel.NON_EVENT
    np.testing.assert_allclose(w_injected[non_event], w_builtin[non_event])


def test_fitted_estimator_object_strategy():
    times = np.array([1., 2., 3., 4., 5.])
    events = np.array([1, 0, 1, 0, 1])
    by_name = CensoringDistribution("NelsonAalen").fit(times, events)
    by_object = CensoringDistribution(NelsonAalen(times, 1 - events))
    grid = np.linspace(0, 6, 13)
    np.testing.assert_allclose(by_name.survival(grid), by_object.survival(grid))
    np.testing.assert_allclose(by_name.survival_left(grid), by_object.survival_left(grid))


def test_unknown_estimator_name():
    with pytest.raises(ValueError):
        CensoringDistribution("Turnbull")


def test_unfitted_distribution_raises():
    with pytest.raises(RuntimeError):
        CensoringDistribution().survival([1.])


def test_resolve_censoring_prefers_training_sample():
    test_times = np.array([1., 2., 3.])
    test_events = np.array([1, 1, 1])
    train_times = np.array([1., 2., 3.])
    train_events = np.array([0, 1, 1])

    censoring = resolve_censoring(None, test_times, test_events, train_times, train_events)
    np.testing.assert_allclose(censoring.survival([1.5]), [2 / 3])
    assert resolve_censoring(None, test_times, test_events, ipcw=False) is None


def test_resolve_censoring_leaves_the_strategy_unfitted():
    strategy = CensoringDistribution("KaplanMeier")
    first = resolve_censoring(strategy, np.array([1., 2., 3.]), np.array([1, 1, 1]))
    second = resolve_censoring(strategy, np.array([1., 2., 3., 4.]), np.array([0, 1, 0, 1]))

    assert not strategy.is_fitted
    assert first is not second
    np.testing.assert_allclose(first.survival([2.5]), [1.])
    np.testing.assert_allclose(second.survival([2.5]), [0.75])
