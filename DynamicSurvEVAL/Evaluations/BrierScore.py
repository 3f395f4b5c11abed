import warnings
from typing import Optional, Tuple

import numpy as np
from scipy.integrate import trapezoid

from DynamicSurvEVAL.Evaluations.BinaryOutcome import OutcomeLabel
from DynamicSurvEVAL.Evaluations.CensoringWeights import CensoringDistribution, outcome_weights, resolve_censoring
from DynamicSurvEVAL.Evaluations.custom_types import Numeric, NumericArrayLike
from DynamicSurvEVAL.Evaluations.util import check_and_convert, check_target_times

DENOMINATORS = ("contributing", "all")


def weighted_brier_scores(
        pred_mat: np.ndarray,
        event_times: np.ndarray,
        event_indicators: np.ndarray,
        target_times: np.ndarray,
        censoring: Optional[CensoringDistribution] = None,
        denominator: str = "contributing"
) -> Tuple[np.ndarray, np.ndarray]:
    """
    IPCW-weighted Brier scores at several evaluation times, with the number of contributing observations.

    Brier(t) = sum_i w(i, t) * (I(y_i = non-event) - p_hat(i, t))^2 / N_t

    Observations whose label is indeterminate, or whose weight is undefined, are left out.

    Parameters
    ----------
    pred_mat: np.ndarray, shape = (n_samples, n_times)
        Predicted survival probability of each sample at each evaluation time.
    event_times: np.ndarray, shape = (n_samples, )
        Actual event/censor time for the testing samples.
    event_indicators: np.ndarray, shape = (n_samples, )
        Binary indicators of censoring for the testing samples
    target_times: np.ndarray, shape = (n_times, )
        Evaluation times, aligned with the columns of `pred_mat`.
    censoring: CensoringDistribution, default: None
        Fitted censoring distribution for the IPCW weights. None means unweighted.
    denominator: str, default: "contributing"
        "contributing": N_t is the number of contributing observations at t.
        "all": N_t is the full sample size, excluded observations add zero to the sum.

    Returns
    -------
    brier_scores: np.ndarray, shape = (n_times, )
        NaN at times where no observation contributes.
    counts: np.ndarray, shape = (n_times, )
        Number of contributing observations at each time.
    """
    if denominator not in DENOMINATORS:
        raise ValueError("denominator must be one of {}, got '{}' instead.".format(DENOMINATORS, denominator))

    target_times = check_target_times(target_times)
    pred_mat = check_and_convert(pred_mat)
    if pred_mat.ndim == 1:
        pred_mat = pred_mat.reshape(-1, 1)
    if pred_mat.shape != (len(event_times), len(target_times)):
        raise ValueError("pred_mat has shape {}, expected (n_samples, n_times) = {}.".format(
            pred_mat.shape, (len(event_times), len(target_times))))

    labels, weights = outcome_weights(event_times, event_indicators, target_times, censoring)
    contributing = ~np.isnan(weights)
    survived = (labels == OutcomeLabel.NON_EVENT).astype(float)

    ipcw_square_error_mat = np.where(contributing, weights * np.square(survived - pred_mat), 0.)
    counts = contributing.sum(axis=0)

    if denominator == "contributing":
        denominators = counts.astype(float)
    else:
        denominators = np.full(counts.shape, float(pred_mat.shape[0]))

    brier_scores = np.full(counts.shape, np.nan)
    defined = counts > 0
    brier_scores[defined] = ipcw_square_error_mat[:, defined].sum(axis=0) / denominators[defined]
    return brier_scores, counts


def single_brier_score(
        preds: NumericArrayLike,
        event_times: NumericArrayLike,
        event_indicators: NumericArrayLike,
        target_time: Optional[Numeric] = None,
        train_event_times: Optional[NumericArrayLike] = None,
        train_event_indicators: Optional[NumericArrayLike] = None,
        ipcw: bool = True,
        censoring=None,
        denominator: str = "contributing"
) -> float:
    """
    Calculate the Brier score at a specific time.

    Parameters
    ----------
    preds: NumericArrayLike, shape = (n_samples, )
        Estimated survival probabilities at the specific time for the testing samples.
    event_times: NumericArrayLike, shape = (n_samples, )
        Actual event/censor time for the testing samples.
    event_indicators: NumericArrayLike, shape = (n_samples, )
        Binary indicators of censoring for the testing samples
    target_time: float, default: None
        The specific time point for which to estimate the Brier score. Defaults to the median observed time.
    train_event_times: NumericArrayLike, shape = (n_train_samples, ), default: None
        Actual event/censor time for the training samples, used to fit the censoring distribution.
    train_event_indicators: NumericArrayLike, shape = (n_train_samples, ), default: None
        Binary indicators of censoring for the training samples
    ipcw: bool, default: True
        Whether to use Inverse Probability of Censoring Weighting (IPCW) in the calculation.
    censoring: str, fitted estimator, callable or CensoringDistribution, default: None
        Censoring distribution strategy. None means a Kaplan-Meier fit.
    denominator: str, default: "contributing"
        See `weighted_brier_scores`.

    Returns
    -------
    brier_score: float
        Value of the brier score. NaN if no observation contributes at the target time.
    """
    event_times, event_indicators = check_and_convert(event_times, event_indicators)
    if target_time is None:
        target_time = np.median(event_times)

    censoring = resolve_censoring(censoring, event_times, event_indicators,
                                  train_event_times, train_event_indicators, ipcw)
    b_scores, _ = weighted_brier_scores(
        check_and_convert(preds).reshape(-1, 1), event_times, event_indicators,
        np.array([target_time], dtype=float), censoring, denominator
    )
    return b_scores[0].item()


def brier_multiple_points(
        pred_mat: NumericArrayLike,
        event_times: NumericArrayLike,
        event_indicators: NumericArrayLike,
        target_times: NumericArrayLike,
        train_event_times: Optional[NumericArrayLike] = None,
        train_event_indicators: Optional[NumericArrayLike] = None,
        ipcw: bool = True,
        censoring=None,
        denominator: str = "contributing"
) -> np.ndarray:
    """
    Calculate multiple Brier scores at multiple specific times.

    Parameters
    ----------
    pred_mat: NumericArrayLike, shape = (n_samples, n_time_points)
        Predicted probability array (2-D) for each instances at each time point.
    event_times: NumericArrayLike, shape = (n_samples, )
        Actual event/censor time for the testing samples.
    event_indicators: NumericArrayLike, shape = (n_samples, )
        Binary indicators of censoring for the testing samples
    target_times: NumericArrayLike, shape = (n_time_points, )
        The specific time points for which to estimate the Brier scores.
    train_event_times: NumericArrayLike, shape = (n_train_samples, ), default: None
        Actual event/censor time for the training samples.
    train_event_indicators: NumericArrayLike, shape = (n_train_samples, ), default: None
        Binary indicators of censoring for the training samples
    ipcw: bool, default: True
        Whether to use Inverse Probability of Censoring Weighting (IPCW) in the calculation.
    censoring: str, fitted estimator, callable or CensoringDistribution, default: None
        Censoring distribution strategy. None means a Kaplan-Meier fit.
    denominator: str, default: "contributing"
        See `weighted_brier_scores`.

    Returns
    -------
    brier_scores: np.ndarray, shape = (n_time_points, )
        Values of multiple Brier scores.
    """
    target_times = check_target_times(target_times)
    event_times, event_indicators = check_and_convert(event_times, event_indicators)

    censoring = resolve_censoring(censoring, event_times, event_indicators,
                                  train_event_times, train_event_indicators, ipcw)
    brier_scores, _ = weighted_brier_scores(pred_mat, event_times, event_indicators, target_times,
                                            censoring, denominator)
    return brier_scores


def integrated_brier_score(
        brier_scores: NumericArrayLike,
        target_times: NumericArrayLike,
        normalize: bool = False
) -> float:
    """
    Integrate the time-dependent Brier score over the evaluation times with the trapezoidal rule.

    Parameters
    ----------
    brier_scores: NumericArrayLike, shape = (n_time_points, )
        Brier scores at the evaluation times. NaN entries are skipped.
    target_times: NumericArrayLike, shape = (n_time_points, )
        Strictly increasing evaluation times.
    normalize: bool, default: False
        If False, return the raw area under the Brier score curve.
        If True, divide the area by the time span covered.

    Returns
    -------
    ibs_score: float
        The integrated Brier score, NaN if fewer than two evaluation times have a defined Brier score.
    """
    # NaN is allowed in the scores, so they skip check_and_convert
    brier_scores = np.asarray(brier_scores, dtype=float)
    target_times = check_target_times(target_times)
    if brier_scores.shape != target_times.shape:
        raise ValueError("brier_scores and target_times must have the same shape.")
    if np.any(np.diff(target_times) <= 0):
        raise ValueError("target_times must be strictly increasing.")

    defined = ~np.isnan(brier_scores)
    if not np.all(defined):
        warnings.warn("Time-dependent Brier Score contains nan at times {}; these points are skipped in the "
                      "integral.".format(target_times[~defined]))
        brier_scores = brier_scores[defined]
        target_times = target_times[defined]

    if brier_scores.size < 2:
        return np.nan

    integral_value = trapezoid(brier_scores, target_times)
    if normalize:
        return integral_value / (target_times[-1] - target_times[0])
    return integral_value
