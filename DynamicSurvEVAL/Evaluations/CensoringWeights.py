import warnings
from typing import Optional, Tuple, Union

import numpy as np

from DynamicSurvEVAL.Evaluations.BinaryOutcome import OutcomeLabel, encode_outcomes
from DynamicSurvEVAL.Evaluations.custom_types import NumericArrayLike, SurvivalFunction
from DynamicSurvEVAL.Evaluations.util import check_event_data, check_target_times
from DynamicSurvEVAL.NonparametricEstimator.SingleEvent import KaplanMeier, NelsonAalen

_ESTIMATORS = {
    "KaplanMeier": KaplanMeier,
    "NelsonAalen": NelsonAalen,
}


class CensoringDistribution:
    """
    Survival function G(s) of the censoring time, i.e. the probability of remaining uncensored past s.

    The strategy is one of:
      - the name of a built-in estimator ('KaplanMeier' or 'NelsonAalen'), fitted on the reference sample
        with the event indicators flipped (censoring becomes the "event") by calling `fit`;
      - an already fitted estimator object exposing `predict_survival(times)` and, optionally,
        `predict_survival_left(times)`;
      - any callable mapping times to G(s).

    When the strategy cannot evaluate left limits, G(s-) is approximated by G at the next float below s.
    Estimators carrying `survival_times` (the built-in ones) are undefined past their last time: G is NaN there.
    """

    def __init__(
            self,
            estimator: Union[str, object, SurvivalFunction] = "KaplanMeier"
    ):
        self.estimator = estimator
        self.estimator_ = None
        if isinstance(estimator, str):
            if estimator not in _ESTIMATORS:
                raise ValueError("Censoring estimator must be one of {}, got '{}' instead.".format(
                    list(_ESTIMATORS), estimator))
        elif hasattr(estimator, "predict_survival") or callable(estimator):
            self.estimator_ = estimator
        else:
            raise TypeError("Censoring estimator must be a name, a fitted estimator with 'predict_survival', "
                            "or a callable, got '{}' instead.".format(type(estimator)))

    @property
    def is_fitted(self) -> bool:
        return self.estimator_ is not None

    @property
    def max_time(self) -> float:
        """Last time seen by the censoring estimator, +inf for estimators without a known support."""
        self._check_fitted()
        survival_times = getattr(self.estimator_, "survival_times", None)
        if survival_times is None or np.size(survival_times) == 0:
            return np.inf
        return float(np.max(survival_times))

    def fit(
            self,
            event_times: NumericArrayLike,
            event_indicators: NumericArrayLike
    ) -> "CensoringDistribution":
        """
        Fit the censoring distribution on the reference sample. Only needed for named estimators;
        injected estimators are used as they are.
        """
        if not isinstance(self.estimator, str):
            return self

        event_times, event_indicators = check_event_data(event_times, event_indicators)
        inverse_event_indicators = 1 - event_indicators.astype(int)
        self.estimator_ = _ESTIMATORS[self.estimator](event_times, inverse_event_indicators)
        return self

    def _check_fitted(self):
        if self.estimator_ is None:
            raise RuntimeError("Censoring distribution is not fitted yet. Call 'fit' with the reference sample.")

    def _evaluate(self, times: np.ndarray) -> np.ndarray:
        if hasattr(self.estimator_, "predict_survival"):
            probs = self.estimator_.predict_survival(times)
        else:
            probs = self.estimator_(times)
        return np.asarray(probs, dtype=float).reshape(np.shape(times))

    def _mask_unsupported(self, times: np.ndarray, probs: np.ndarray) -> np.ndarray:
        beyond = times > self.max_time
        if np.any(beyond):
            probs = np.where(beyond, np.nan, probs)
        return probs

    def survival(self, times: NumericArrayLike) -> np.ndarray:
        """G(s): probability of remaining uncensored past s."""
        self._check_fitted()
        times = np.asarray(times, dtype=float)
        return self._mask_unsupported(times, self._evaluate(times))

    def survival_left(self, times: NumericArrayLike) -> np.ndarray:
        """G(s-): left limit of the censoring survival function, excluding a jump exactly at s."""
        self._check_fitted()
        times = np.asarray(times, dtype=float)
        if hasattr(self.estimator_, "predict_survival_left"):
            probs = self.estimator_.predict_survival_left(times)
            probs = np.asarray(probs, dtype=float).reshape(np.shape(times))
        else:
            probs = self._evaluate(np.nextafter(times, -np.inf))
        return self._mask_unsupported(times, probs)

    def __call__(self, times: NumericArrayLike) -> np.ndarray:
        return self.survival(times)


def resolve_censoring(
        censoring: Union[None, str, object, SurvivalFunction, CensoringDistribution],
        event_times: NumericArrayLike,
        event_indicators: NumericArrayLike,
        train_event_times: Optional[NumericArrayLike] = None,
        train_event_indicators: Optional[NumericArrayLike] = None,
        ipcw: bool = True
) -> Optional[CensoringDistribution]:
    """
    Return a fitted censoring distribution, or None when IPCW is disabled.

    Unfitted (named) strategies are fitted on a fresh copy, on the training sample when it is given,
    otherwise on the evaluation sample itself. The strategy object passed in is left unfitted.
    """
    if not ipcw:
        return None

    if censoring is None:
        censoring = "KaplanMeier"
    if not isinstance(censoring, CensoringDistribution):
        censoring = CensoringDistribution(censoring)

    if not censoring.is_fitted:
        # fit a fresh copy so a shared unfitted strategy never carries one sample's G into another
        censoring = CensoringDistribution(censoring.estimator)
        if (train_event_times is not None) and (train_event_indicators is not None):
            censoring.fit(train_event_times, train_event_indicators)
        else:
            censoring.fit(event_times, event_indicators)
    return censoring


def outcome_weights(
        event_times: NumericArrayLike,
        event_indicators: NumericArrayLike,
        target_times,
        censoring: Optional[CensoringDistribution] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Encode the binary outcomes and compute the inverse probability of censoring weights (IPCW) at the
    evaluation time(s).

    Parameters
    ----------
    event_times: NumericArrayLike, shape = (n_samples, )
        Actual event/censor time for the testing samples.
    event_indicators: NumericArrayLike, shape = (n_samples, )
        Binary indicators of censoring for the testing samples
    target_times: float or NumericArrayLike, shape = (n_times, )
        The evaluation time(s).
    censoring: CensoringDistribution, default: None
        Fitted censoring distribution. If None, no weighting is applied: every event / non-event gets
        weight 1.

    Returns
    -------
    labels: np.ndarray, dtype int8
        `OutcomeLabel` codes, shape (n_samples, ) or (n_samples, n_times).
    weights: np.ndarray, dtype float
        Weights with the same shape. NaN marks an undefined weight: indeterminate label, or the censoring
        survival is 0 at the point the weight needs it, or that point lies past the last time
        seen by the censoring estimator.
    """
    scalar_time = np.ndim(target_times) == 0
    event_times, event_indicators = check_event_data(event_times, event_indicators)
    target_times = check_target_times(target_times)

    labels = encode_outcomes(event_times, event_indicators, target_times)
    is_event = labels == OutcomeLabel.EVENT
    is_non_event = labels == OutcomeLabel.NON_EVENT

    weights = np.full(labels.shape, np.nan)
    if censoring is None:
        weights[is_event | is_non_event] = 1.
    else:
        # Category one: event at or before the target time, weighted at the left limit of its own time.
        # Category two: still at risk after the target time, weighted at the target time.
        g_event = censoring.survival_left(event_times)
        g_target = censoring.survival(target_times)
        with np.errstate(divide="ignore"):
            inv_event = np.where(g_event > 0, 1 / g_event, np.nan)
            inv_target = np.where(g_target > 0, 1 / g_target, np.nan)
        weights = np.where(is_event, inv_event[:, None], weights)
        weights = np.where(is_non_event, inv_target[None, :], weights)

        n_undefined = np.sum(np.isnan(weights) & (is_event | is_non_event))
        if n_undefined > 0:
            warnings.warn("Censoring survival probability is 0 or beyond the censoring reference for {} "
                          "(observation, time) pairs; their IPCW weights are undefined and they are excluded.".format(
                              n_undefined))

    if scalar_time:
        return labels[:, 0], weights[:, 0]
    return labels, weights


def ipcw_weights(
        event_times: NumericArrayLike,
        event_indicators: NumericArrayLike,
        target_times,
        censoring: Optional[CensoringDistribution] = None
) -> np.ndarray:
    """
    IPCW weights at the evaluation time(s), NaN where undefined. See `outcome_weights`.
    """
    return outcome_weights(event_times, event_indicators, target_times, censoring)[1]
