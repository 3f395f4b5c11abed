import numpy as np
import pytest

from DynamicSurvEVAL.Evaluations.AreaUnderROCurve import auc, auc_multiple_points, weighted_roc_curve
from DynamicSurvEVAL.Evaluations.CensoringWeights import CensoringDistribution
from DynamicSurvEVAL.Evaluations.util import predict_multi_probs_from_curve


def _cases_and_controls(case_preds, control_preds, target_time=5.):
    """Cases have an event before the target time, controls are observed past it."""
    n_cases, n_controls = len(case_preds), len(control_preds)
    times = np.concatenate([np.arange(1, n_cases + 1, dtype=float),
                            target_time + np.arange(1, n_controls + 1, dtype=float)])
    events = np.concatenate([np.ones(n_cases), np.zeros(n_controls)])
    preds = np.concatenate([case_preds, control_preds])
    return preds, times, events


def test_tied_scores_count_half():
    preds, times, events = _cases_and_controls([0.2, 0.5], [0.5, 0.8])
    assert auc(preds, times, events, 5., ipcw=False) == pytest.approx(0.875)


def test_perfect_ranking():
    preds, times, events = _cases_and_controls([0.1, 0.2, 0.3], [0.6, 0.9])
    assert auc(preds, times, events, 5., ipcw=False) == pytest.approx(1.)


def test_weighted_auc_with_injected_censoring_survival():
    # G(s) = 1 - s / 10: cases weighted 1/G(1-) and 1/G(4-), both controls 1/G(5)
    times = np.array([1., 4., 8., 9.])
    events = np.array([1, 1, 0, 1])
    preds = np.array([0.7, 0.3, 0.5, 0.9])
    score = auc(preds, times, events, 5., censoring=lambda s: 1 - np.asarray(s) / 10)
    assert score == pytest.approx(0.8)


def test_single_class_gives_nan_with_warning():
    times = np.array([1., 2., 3.])
    events = np.array([1, 1, 1])
    with pytest.warns(UserWarning):
        score = auc(np.array([0.3, 0.2, 0.1]), times, events, 5.)
    assert np.isnan(score)


def test_random_scores_are_near_one_half():
    rng = np.random.default_rng(2024)
    scores = []
    for _ in range(50):
        event_times = rng.exponential(5, size=500)
        censor_times = rng.exponential(10, size=500)
        times = np.minimum(event_times, censor_times)
        events = event_times <= censor_times
        scores.append(auc(rng.random(500), times, events, 4.))
    assert np.mean(scores) == pytest.approx(0.5, abs=0.02)


def test_invariant_to_monotone_transform(synthetic_data):
    times = synthetic_data["observed_times"]
    events = synthetic_data["event_indicators"]
    preds = np.random.default_rng(1).random(times.shape)
    assert auc(preds ** 3, times, events, 1.5) == pytest.approx(auc(preds, times, events, 1.5))


def test_roc_curve_endpoints(synthetic_data):
    times = synthetic_data["observed_times"]
    events = synthetic_data["event_indicators"]
    censoring = CensoringDistribution().fit(times, events)
    preds = np.random.default_rng(5).random(times.shape)

    fpr, tpr, thresholds, n_contributing = weighted_roc_curve(preds, times, events, 1.5, censoring)
    assert (fpr[0], tpr[0]) == (0., 0.)
    assert fpr[-1] == pytest.approx(1.)
    assert tpr[-1] == pytest.approx(1.)
    assert np.isinf(thresholds[0])
    assert np.all(np.diff(thresholds) < 0)
    assert np.all(np.diff(fpr) >= 0) and np.all(np.diff(tpr) >= 0)
    assert 0 < n_contributing <= times.size


def test_tied_scores_share_one_threshold():
    preds, times, events = _cases_and_controls([0.2, 0.5], [0.5, 0.8])
    fpr, tpr, thresholds, n_contributing = weighted_roc_curve(preds, times, events, 5.)
    # three distinct risk scores plus the leading +inf
    assert thresholds.size == 4
    assert n_contributing == 4
    np.testing.assert_allclose(tpr, [0., 0.5, 1., 1.])
    np.testing.assert_allclose(fpr, [0., 0., 0.5, 1.])


def test_parallel_matches_sequential(synthetic_data):
    times = synthetic_data["observed_times"]
    events = synthetic_data["event_indicators"]
    target_times = np.array([0.5, 1., 1.5, 2., 3.])
    pred_mat = predict_multi_probs_from_curve(synthetic_data["survival_curves"], synthetic_data["time_grid"],
                                              target_times)
    censoring = CensoringDistribution().fit(times, events)

    sequential, seq_counts = auc_multiple_points(pred_mat, times, events, target_times, censoring, n_jobs=1)
    parallel, par_counts = auc_multiple_points(pred_mat, times, events, target_times, censoring, n_jobs=2)
    np.testing.assert_allclose(sequential, parallel)
    np.testing.assert_array_equal(seq_counts, par_counts)


def test_multiple_points_agree_with_single_point(synthetic_data):
    times = synthetic_data["observed_times"]
    events = synthetic_data["event_indicators"]
    target_times = np.array([1., 2.])
    pred_mat = predict_multi_probs_from_curve(synthetic_data["survival_curves"], synthetic_data["time_grid"],
                                              target_times)
    censoring = CensoringDistribution().fit(times, events)

    scores, _ = auc_multiple_points(pred_mat, times, events, target_times, censoring)
    for j, t in enumerate(target_times):
        assert scores[j] == pytest.approx(auc(pred_mat[:, j], times, events, t, censoring=censoring))


def test_prediction_shape_mismatch():
    with pytest.raises(ValueError):
        weighted_roc_curve(np.array([0.1, 0.2]), np.array([1., 2., 3.]), np.array([1, 0, 1]), 2.)
