import warnings
from typing import Optional, Tuple

import numpy as np
from joblib import Parallel, delayed
from sklearn.metrics import auc as area_under_curve
from sklearn.metrics import roc_curve
from tqdm import tqdm

from DynamicSurvEVAL.Evaluations.BinaryOutcome import OutcomeLabel
from DynamicSurvEVAL.Evaluations.CensoringWeights import CensoringDistribution, outcome_weights, resolve_censoring
from DynamicSurvEVAL.Evaluations.custom_types import Numeric, NumericArrayLike
from DynamicSurvEVAL.Evaluations.util import check_and_convert, check_target_times


def _roc_from_outcomes(
        predict_probs: np.ndarray,
        labels: np.ndarray,
        weights: np.ndarray,
        target_time: float
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, int]:
    """
    Weighted ROC curve at one evaluation time from already encoded labels and weights.

    Returns (fpr, tpr, thresholds, n_contributing). The arrays are empty when only one class contributes.
    """
    contributing = ~np.isnan(weights)
    n_contributing = int(contributing.sum())

    # cases are the events at or before the target time; a higher risk score 1 - S(t) should rank them first
    binary_status = (labels[contributing] == OutcomeLabel.EVENT).astype(int)
    if np.all(binary_status == 0) or np.all(binary_status == 1):
        warnings.warn("Survival status is all zeros or all ones at time: {}, AUC cannot be computed.".format(
            target_time))
        empty = np.array([], dtype=float)
        return empty, empty, empty, n_contributing

    risks = 1 - predict_probs[contributing]
    # keep every distinct risk score as a threshold; equal scores share one step
    fpr, tpr, thresholds = roc_curve(binary_status, risks, sample_weight=weights[contributing],
                                     drop_intermediate=False)
    thresholds = thresholds.astype(float)
    thresholds[0] = np.inf
    return fpr, tpr, thresholds, n_contributing


def _auc_from_outcomes(predict_probs, labels, weights, target_time) -> Tuple[float, int]:
    fpr, tpr, _, n_contributing = _roc_from_outcomes(predict_probs, labels, weights, target_time)
    if fpr.size == 0:
        return np.nan, n_contributing
    return float(area_under_curve(fpr, tpr)), n_contributing


def weighted_roc_curve(
        predict_probs: NumericArrayLike,
        event_times: NumericArrayLike,
        event_indicators: NumericArrayLike,
        target_time: Numeric,
        censoring: Optional[CensoringDistribution] = None
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, int]:
    """
    Calculate the IPCW-weighted ROC curve at a target time.

    Parameters
    ----------
    predict_probs: NumericArrayLike, shape = (n_samples, )
        The predicted survival probabilities at the target time.
    event_times: NumericArrayLike, shape = (n_samples, )
        The event or censoring times for the test data.
    event_indicators: NumericArrayLike, shape = (n_samples, )
        The binary indicators of whether the event occurred (1) or was censored (0).
    target_time: float
        The time point at which to compute the curve.
    censoring: CensoringDistribution, default: None
        Fitted censoring distribution. None means unweighted.

    Returns
    -------
    fpr: np.ndarray
        Weighted false positive rate (1 - specificity), one entry per threshold.
    tpr: np.ndarray
        Weighted true positive rate (sensitivity), one entry per threshold.
    thresholds: np.ndarray
        Decreasing thresholds on the risk score 1 - S(t). The first one is +inf (nobody predicted positive).
    n_contributing: int
        Number of observations with a defined label and weight.
    """
    predict_probs = check_and_convert(predict_probs)
    labels, weights = outcome_weights(event_times, event_indicators, target_time, censoring)
    if predict_probs.shape != labels.shape:
        raise ValueError("predict_probs must have one probability per sample.")
    return _roc_from_outcomes(predict_probs, labels, weights, target_time)


def auc(
        predict_probs: NumericArrayLike,
        event_times: NumericArrayLike,
        event_indicators: NumericArrayLike,
        target_time: Optional[Numeric] = None,
        train_event_times: Optional[NumericArrayLike] = None,
        train_event_indicators: Optional[NumericArrayLike] = None,
        ipcw: bool = True,
        censoring=None
) -> float:
    """
    Calculate the Area Under the ROC Curve (AUC) for the survival model at a target time.

    Parameters
    ----------
    predict_probs: NumericArrayLike, shape = (n_samples, )
        The predicted survival probabilities at the target time.
    event_times: NumericArrayLike, shape = (n_samples, )
        The event or censoring times for the test data
    event_indicators: NumericArrayLike, shape = (n_samples, )
        The binary indicators of whether the event occurred (1) or was censored (0)
    target_time: float, optional
        The specific time point at which to calculate the AUC. If not specified, the median of the event times is used.
    train_event_times: NumericArrayLike, shape = (n_train_samples, ), default: None
        Actual event/censor time for the training samples, used to fit the censoring distribution.
    train_event_indicators: NumericArrayLike, shape = (n_train_samples, ), default: None
        Binary indicators of censoring for the training samples
    ipcw: bool, default: True
        Whether to weight the cases and controls by the inverse probability of censoring.
    censoring: str, fitted estimator, callable or CensoringDistribution, default: None
        Censoring distribution strategy. None means a Kaplan-Meier fit.

    Returns
    -------
    auc: float
        The AUC value calculated at the specified target time. NaN if all contributing samples share one label.
    """
    event_times, event_indicators = check_and_convert(event_times, event_indicators)
    # if the target time is not specified, then we use the median of the event times
    if target_time is None:
        target_time = np.median(event_times)

    censoring = resolve_censoring(censoring, event_times, event_indicators,
                                  train_event_times, train_event_indicators, ipcw)
    labels, weights = outcome_weights(event_times, event_indicators, target_time, censoring)
    return _auc_from_outcomes(check_and_convert(predict_probs), labels, weights, target_time)[0]


def auc_multiple_points(
        pred_mat: NumericArrayLike,
        event_times: NumericArrayLike,
        event_indicators: NumericArrayLike,
        target_times: NumericArrayLike,
        censoring: Optional[CensoringDistribution] = None,
        n_jobs: int = 1,
        verbose: bool = False
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Calculate the weighted AUC at several evaluation times.

    Parameters
    ----------
    pred_mat: NumericArrayLike, shape = (n_samples, n_times)
        Predicted survival probability of each sample at each evaluation time.
    event_times: NumericArrayLike, shape = (n_samples, )
        The event or censoring times for the test data
    event_indicators: NumericArrayLike, shape = (n_samples, )
        The binary indicators of whether the event occurred (1) or was censored (0)
    target_times: NumericArrayLike, shape = (n_times, )
        The evaluation times.
    censoring: CensoringDistribution, default: None
        Fitted censoring distribution. None means unweighted.
    n_jobs: int, default: 1
        Number of joblib workers over the evaluation times. 1 runs sequentially.
    verbose: bool, default: False
        Show a progress bar over the evaluation times (sequential run only).

    Returns
    -------
    auc_scores: np.ndarray, shape = (n_times, )
        NaN where the AUC is undefined.
    counts: np.ndarray, shape = (n_times, )
        Number of contributing observations at each time.
    """
    target_times = check_target_times(target_times)
    pred_mat = check_and_convert(pred_mat)
    labels, weights = outcome_weights(event_times, event_indicators, target_times, censoring)
    if pred_mat.shape != labels.shape:
        raise ValueError("pred_mat has shape {}, expected (n_samples, n_times) = {}.".format(
            pred_mat.shape, labels.shape))

    columns = range(len(target_times))
    if n_jobs == 1:
        results = [_auc_from_outcomes(pred_mat[:, j], labels[:, j], weights[:, j], target_times[j])
                   for j in tqdm(columns, desc="Calculating time-dependent AUC", disable=not verbose)]
    else:
        results = Parallel(n_jobs=n_jobs)(
            delayed(_auc_from_outcomes)(pred_mat[:, j], labels[:, j], weights[:, j], target_times[j])
            for j in columns
        )

    auc_scores = np.array([score for score, _ in results], dtype=float)
    counts = np.array([count for _, count in results], dtype=int)
    return auc_scores, counts
