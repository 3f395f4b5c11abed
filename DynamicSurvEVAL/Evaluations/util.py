import numpy as np
import pandas as pd
import torch
from typing import List, Tuple, Union
from scipy.interpolate import PchipInterpolator, interp1d

from DynamicSurvEVAL.Evaluations.custom_types import NumericArrayLike

INTERPOLATIONS = ("Linear", "Pchip")


def check_and_convert(*args):
    """
    Makes sure that the given inputs are numpy arrays, list, tuple, panda Series, pandas DataFrames, or torch Tensors.

    Also makes sure that the given inputs have the same shape.

    Then convert the inputs to numpy array.

    Parameters
    ----------
    * args : tuple of objects
             Input object to check / convert.

    Returns
    -------
    * result : numpy array if one argument is given, otherwise tuple of numpy arrays
               The converted and validated args.

    If the input isn't one of the supported formats, it will fail and ask to provide the valid format.
    """
    result = ()
    last_shape = ()
    for i, arg in enumerate(args):
        if isinstance(arg, np.ndarray):
            x = arg.astype(np.double)
        elif isinstance(arg, (list, tuple)):
            x = np.asarray(arg).astype(np.double)
        elif isinstance(arg, (pd.Series, pd.DataFrame)):
            x = arg.values.astype(np.double)
        elif isinstance(arg, torch.Tensor):
            x = arg.detach().cpu().numpy().astype(np.double)
        else:
            error = """{arg} is not a valid data format. Only use 'list', 'tuple', 'np.ndarray', 'torch.Tensor',
                    'pd.Series', 'pd.DataFrame'""".format(arg=type(arg))
            raise TypeError(error)

        if x.size == 0:
            error = " The #{} input is empty. ".format(i + 1)
            error += "Please provide at least 1 element in the array."
            raise IndexError(error)

        if np.isnan(x).any():
            error = "The #{} argument contains null values".format(i + 1)
            raise ValueError(error)

        if i > 0 and x.shape != last_shape:
            error = "Shapes between {}-th input array {} and {}-th input array {} are not consistent".format(
                i, last_shape, i + 1, x.shape)
            raise ValueError(error)
        last_shape = x.shape
        result += (x,)

    return result[0] if len(result) == 1 else result


def check_event_data(
        event_times: NumericArrayLike,
        event_indicators: NumericArrayLike
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert and validate the observed (time, event indicator) pairs.

    Returns
    -------
    event_times: np.ndarray, shape = (n_samples, ), dtype float
    event_indicators: np.ndarray, shape = (n_samples, ), dtype bool
    """
    event_times, event_indicators = check_and_convert(event_times, event_indicators)
    if event_times.ndim != 1:
        raise TypeError("'event_times' is not a one-dimensional array.")
    if np.any(event_times < 0):
        raise ValueError("Observed times must be non-negative.")
    if not np.all(np.isin(event_indicators, (0, 1))):
        raise ValueError("Event indicators must be binary (0 = censored, 1 = event).")
    return event_times, event_indicators.astype(bool)


def check_target_times(target_times) -> np.ndarray:
    """
    Convert the evaluation time(s) into a 1-D float array and reject negative times.
    A scalar is promoted to an array of length one.
    """
    if isinstance(target_times, (int, float, np.integer, np.floating)) or \
            (isinstance(target_times, np.ndarray) and target_times.ndim == 0):
        target_times = np.array([target_times], dtype=float)
    else:
        target_times = check_and_convert(target_times)

    if target_times.ndim != 1:
        error = "'target_times' is not a one-dimensional array."
        raise TypeError(error)
    if np.any(target_times < 0):
        raise ValueError("Evaluation times must be non-negative, got {}.".format(target_times[target_times < 0]))
    return target_times


def check_survival_curves(
        survival_curves: np.ndarray
) -> None:
    """
    Fail fast on curves that are not survival functions: probabilities outside [0, 1],
    or a curve that increases along the time axis.
    """
    if np.any((survival_curves < 0) | (survival_curves > 1)):
        raise ValueError("Predicted survival probabilities must lie within [0, 1].")

    if survival_curves.shape[-1] > 1 and np.any(np.diff(survival_curves, axis=-1) > 0):
        raise ValueError("Predicted survival curves must be non-increasing in time.")


def zero_padding(
        survival_curves: np.ndarray,
        times_coordinates: np.ndarray
) -> Tuple[Union[np.ndarray, List[np.ndarray]], Union[np.ndarray, List[np.ndarray]]]:
    """
    Make sure every curve starts at time 0 with probability 1. If the first time coordinate is not 0,
    a leading point (time 0, probability 1) is inserted.

    With 2-D time coordinates every row is padded on its own, so the result is a list of 1-D curves
    and a list of 1-D time coordinates, which may differ in length.
    """
    if times_coordinates.ndim == 1:
        if times_coordinates[0] != 0:
            times_coordinates = np.concatenate([[0.], times_coordinates])
            pad = np.ones(survival_curves.shape[:-1] + (1,))
            survival_curves = np.concatenate([pad, survival_curves], axis=-1)
    elif times_coordinates.ndim == 2:
        padded = [zero_padding(curve, times) for curve, times in zip(survival_curves, times_coordinates)]
        survival_curves = [curve for curve, _ in padded]
        times_coordinates = [times for _, times in padded]
    else:
        raise ValueError("The time coordinates must be 1-D or 2-D.")
    return survival_curves, times_coordinates


def interpolated_survival_curve(times_coordinate, survival_curve, interpolation):
    if interpolation == "Linear":
        spline = interp1d(times_coordinate, survival_curve, kind='linear', fill_value='extrapolate')
    elif interpolation == "Pchip":
        spline = PchipInterpolator(times_coordinate, survival_curve, axis=-1)
    else:
        raise ValueError("interpolation must be one of {}, got '{}' instead.".format(
            list(INTERPOLATIONS), interpolation))
    return spline


def predict_multi_probs_from_curve(
        survival_curve: np.ndarray,
        times_coordinate: np.ndarray,
        target_times: NumericArrayLike,
        interpolation: str = 'Linear'
) -> np.ndarray:
    """
    Predict the probability of survival at multiple time points from the survival curve(s). The curves are
    interpolated using the specified interpolation method ('Linear' or 'Pchip'). If a target time is beyond
    the last time coordinate, the probability is extrapolated by the linear function through (0, 1) and the
    last point of the curve, floored at 0.

    Parameters
    ----------
    survival_curve: np.ndarray
        Survival curve(s). 1-D array of survival probabilities, or 2-D array (n_samples, n_time_points) of
        curves sharing the same time coordinates.
    times_coordinate: np.ndarray
        Time points corresponding to the survival curve. 1-D array of time points.
    target_times: NumericArrayLike
        Time points at which to predict the probability of survival.
    interpolation: str
        The monotonic cubic interpolation method. One of ['Linear', 'Pchip']. Default: 'Linear'.
        If 'Linear', use the interp1d method from scipy.interpolate.
        If 'Pchip', use the PchipInterpolator from scipy.interpolate.

    Returns
    -------
    predict_probabilities: np.ndarray, shape = (n_target_times, ) or (n_samples, n_target_times)
        Predicted probabilities of survival at the target time points.
    """
    target_times = check_target_times(target_times)

    spline = interpolated_survival_curve(times_coordinate, survival_curve, interpolation)

    # predicting boundary
    max_time = float(max(times_coordinate))
    last_probs = np.asarray(spline(max_time))

    # simply calculate the slope by using the [0, 1] - [max_time, S(max_time)]
    slope = (1 - last_probs) / (0 - max_time)

    # If the target time is out of predicting boundary, then use the linear fit mentioned above;
    # Else if the target time is in the boundary, then use the spline
    predict_probabilities = np.array(spline(target_times), dtype=float)
    beyond = target_times > max_time
    if np.any(beyond):
        extrapolated = np.multiply.outer(slope, target_times[beyond]) + 1
        predict_probabilities[..., beyond] = np.clip(extrapolated, a_min=0, a_max=None)

    return np.clip(predict_probabilities, 0, 1)
