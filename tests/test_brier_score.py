import numpy as np
import pytest

from DynamicSurvEVAL.Evaluations.BrierScore import (brier_multiple_points, integrated_brier_score,
                                                    single_brier_score, weighted_brier_scores)
from DynamicSurvEVAL.Evaluations.CensoringWeights import CensoringDistribution
from DynamicSurvEVAL.Evaluations.util import predict_multi_probs_from_curve


def test_weighted_brier_score_four_observations(four_observations):
    times, events = four_observations
    preds = np.array([0.2, 0.9, 0.4, 0.7])
    # G(5.5) = 0.5, and no censoring happens before the two event times
    score = single_brier_score(preds, times, events, target_time=5.5)
    assert score == pytest.approx(0.38 / 3)


def test_denominator_all_uses_sample_size(four_observations):
    times, events = four_observations
    preds = np.array([0.2, 0.9, 0.4, 0.7])
    score = single_brier_score(preds, times, events, target_time=5.5, denominator="all")
    assert score == pytest.approx(0.095)


def test_unweighted_brier_score(four_observations):
    times, events = four_observations
    preds = np.array([0.2, 0.9, 0.4, 0.7])
    score = single_brier_score(preds, times, events, target_time=5.5, ipcw=False)
    assert score == pytest.approx(0.29 / 3)


def test_contributing_counts(four_observations):
    times, events = four_observations
    censoring = CensoringDistribution().fit(times, events)
    pred_mat = np.full((4, 3), 0.5)
    scores, counts = weighted_brier_scores(pred_mat, times, events, np.array([1., 4., 5.5]), censoring)
    np.testing.assert_array_equal(counts, [4, 4, 3])
    # everyone is a non-event at time 1, with weight 1
    assert scores[0] == pytest.approx(0.25)


def test_perfect_predictions_score_zero(synthetic_data):
    times = synthetic_data["observed_times"]
    events = synthetic_data["event_indicators"]
    target_time = float(np.median(times))
    preds = (times > target_time).astype(float)
    assert single_brier_score(preds, times, events, target_time) == pytest.approx(0.)


def test_coin_flip_predictions_score_a_quarter(synthetic_data):
    times = synthetic_data["observed_times"]
    events = synthetic_data["event_indicators"]
    preds = np.full(times.shape, 0.5)
    assert single_brier_score(preds, times, events, 1.5, ipcw=False) == pytest.approx(0.25)


def test_brier_score_is_permutation_invariant(synthetic_data):
    times = synthetic_data["observed_times"]
    events = synthetic_data["event_indicators"]
    rng = np.random.default_rng(0)
    preds = rng.random(times.shape)
    order = rng.permutation(times.size)

    score = single_brier_score(preds, times, events, 2.)
    shuffled = single_brier_score(preds[order], times[order], events[order], 2.)
    assert score == pytest.approx(shuffled)


def test_no_contributing_observation_gives_nan():
    times = np.array([1., 2.])
    events = np.array([0, 0])
    score = single_brier_score(np.array([0.3, 0.6]), times, events, target_time=3., ipcw=False)
    assert np.isnan(score)


def test_multiple_points_agree_with_single_points(synthetic_data):
    times = synthetic_data["observed_times"]
    events = synthetic_data["event_indicators"]
    target_times = np.array([0.5, 1., 2., 3.])
    pred_mat = predict_multi_probs_from_curve(synthetic_data["survival_curves"], synthetic_data["time_grid"],
                                              target_times)

    scores = brier_multiple_points(pred_mat, times, events, target_times)
    for j, t in enumerate(target_times):
        assert scores[j] == pytest.approx(single_brier_score(pred_mat[:, j], times, events, t))


def test_training_sample_drives_the_censoring_weights(four_observations):
    times, events = four_observations
    preds = np.array([0.2, 0.9, 0.4, 0.7])
    # no censoring in the training sample, so every weight is 1
    train_times = np.array([1., 2., 3., 4., 7.])
    train_events = np.ones(5)
    score = single_brier_score(preds, times, events, 5.5, train_times, train_events)
    assert score == pytest.approx(0.29 / 3)


def test_invalid_denominator(four_observations):
    times, events = four_observations
    with pytest.raises(ValueError):
        single_brier_score(np.full(4, 0.5), times, events, 3., denominator="observed")


def test_prediction_shape_mismatch(four_observations):
    times, events = four_observations
    with pytest.raises(ValueError):
        weighted_brier_scores(np.full((4, 2), 0.5), times, events, np.array([1., 2., 3.]))


def test_integrated_brier_score_raw_area_and_normalized():
    scores = np.array([0.1, 0.2, 0.1, 0.3])
    times = np.array([0., 1., 2., 3.])
    assert integrated_brier_score(scores, times) == pytest.approx(0.5)
    assert integrated_brier_score(scores, times, normalize=True) == pytest.approx(0.5 / 3)


def test_integrated_brier_score_skips_undefined_points():
    scores = np.array([0.1, np.nan, 0.1, 0.3])
    times = np.array([0., 1., 2., 3.])
    with pytest.warns(UserWarning):
        assert integrated_brier_score(scores, times) == pytest.approx(0.4)


def test_integrated_brier_score_needs_two_points():
    with pytest.warns(UserWarning):
        assert np.isnan(integrated_brier_score(np.array([0.2, np.nan]), np.array([1., 2.])))


def test_integrated_brier_score_requires_increasing_times():
    with pytest.raises(ValueError):
        integrated_brier_score(np.array([0.1, 0.2]), np.array([2., 1.]))
