from enum import IntEnum

import numpy as np

from DynamicSurvEVAL.Evaluations.custom_types import Numeric, NumericArrayLike
from DynamicSurvEVAL.Evaluations.util import check_event_data, check_target_times


class OutcomeLabel(IntEnum):
    """
    Status of an observation at an evaluation time t.

    EVENT: the event was observed at or before t.
    NON_EVENT: the observation is known to survive past t (event or censor time after t).
    INDETERMINATE: censored at or before t, so the status at t is unknown.
    """
    INDETERMINATE = -1
    NON_EVENT = 0
    EVENT = 1


def encode_outcome(
        observed_time: Numeric,
        event_indicator: Numeric,
        target_time: Numeric
) -> OutcomeLabel:
    """
    Encode a single (observed time, event indicator) pair at the target time.
    """
    if observed_time < 0 or target_time < 0:
        raise ValueError("Observed time and evaluation time must be non-negative.")

    if observed_time > target_time:
        return OutcomeLabel.NON_EVENT
    if event_indicator:
        return OutcomeLabel.EVENT
    return OutcomeLabel.INDETERMINATE


def encode_outcomes(
        event_times: NumericArrayLike,
        event_indicators: NumericArrayLike,
        target_times
) -> np.ndarray:
    """
    Vectorised version of `encode_outcome` over observations and evaluation times.

    Parameters
    ----------
    event_times: NumericArrayLike, shape = (n_samples, )
        Actual event/censor time for the samples.
    event_indicators: NumericArrayLike, shape = (n_samples, )
        Binary indicators of the event (1) or censoring (0).
    target_times: float or NumericArrayLike, shape = (n_times, )
        Evaluation time(s).

    Returns
    -------
    labels: np.ndarray, dtype int8
        Codes of `OutcomeLabel`. Shape (n_samples, ) if `target_times` is a scalar, otherwise
        (n_samples, n_times).
    """
    scalar_time = np.ndim(target_times) == 0
    event_times, event_indicators = check_event_data(event_times, event_indicators)
    target_times = check_target_times(target_times)

    times_mat = event_times[:, None]
    is_non_event = times_mat > target_times[None, :]
    is_event = ~is_non_event & event_indicators[:, None]

    labels = np.full(is_non_event.shape, OutcomeLabel.INDETERMINATE, dtype=np.int8)
    labels[is_non_event] = OutcomeLabel.NON_EVENT
    labels[is_event] = OutcomeLabel.EVENT
    return labels[:, 0] if scalar_time else labels
