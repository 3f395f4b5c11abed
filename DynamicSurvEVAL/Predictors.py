from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
import pandas as pd

from DynamicSurvEVAL.Evaluations.custom_types import NumericArrayLike
from DynamicSurvEVAL.Evaluations.util import (INTERPOLATIONS, check_and_convert, check_target_times,
                                              predict_multi_probs_from_curve, zero_padding)
from DynamicSurvEVAL.NonparametricEstimator.SingleEvent import step_lookup


class SurvivalPredictor(ABC):
    """
    Capability interface of a fitted survival model: predicted probabilities of surviving beyond each
    requested time, for each row of covariates.
    """

    @abstractmethod
    def predict_survival(
            self,
            covariates,
            times: NumericArrayLike
    ) -> np.ndarray:
        """
        Parameters
        ----------
        covariates:
            Model inputs for n_samples observations, in whatever form the wrapped model accepts.
        times: NumericArrayLike, shape = (n_times, )
            Non-negative evaluation times.

        Returns
        -------
        survival_probabilities: np.ndarray, shape = (n_samples, n_times)
        """
        raise NotImplementedError


class LifelinesPredictor(SurvivalPredictor):
    """
    Adapter for fitted lifelines regression models (CoxPHFitter, WeibullAFTFitter, ...).
    """

    def __init__(self, model):
        if not hasattr(model, "predict_survival_function"):
            raise TypeError("{} does not provide 'predict_survival_function'.".format(type(model).__name__))
        self.model = model

    def predict_survival(self, covariates: pd.DataFrame, times: NumericArrayLike) -> np.ndarray:
        times = check_target_times(times)
        # lifelines returns a (n_times, n_samples) frame indexed by time
        surv = self.model.predict_survival_function(covariates, times=times)
        return np.clip(surv.values.T.astype(float), 0, 1)


class ScikitSurvivalPredictor(SurvivalPredictor):
    """
    Adapter for estimators whose `predict_survival_function` returns step functions carrying the jump
    times in `.x` and the survival probabilities in `.y` (scikit-survival convention).
    """

    def __init__(self, model):
        if not hasattr(model, "predict_survival_function"):
            raise TypeError("{} does not provide 'predict_survival_function'.".format(type(model).__name__))
        self.model = model

    def predict_survival(self, covariates, times: NumericArrayLike) -> np.ndarray:
        times = check_target_times(times)
        step_functions = self.model.predict_survival_function(covariates)
        surv = np.empty((len(step_functions), len(times)), dtype=float)
        for i, fn in enumerate(step_functions):
            surv[i] = step_lookup(np.asarray(fn.x, dtype=float), np.asarray(fn.y, dtype=float), times, 1.)
        return surv


class CurvePredictor(SurvivalPredictor):
    """
    Predictor backed by survival curves that were already computed on a time grid.

    The covariates are row indices into the stored curves (None selects every row).
    """

    def __init__(
            self,
            survival_curves: NumericArrayLike,
            time_coordinates: NumericArrayLike,
            interpolation: str = "Linear"
    ):
        if interpolation not in INTERPOLATIONS:
            raise ValueError("interpolation must be one of {}, got '{}' instead.".format(
                list(INTERPOLATIONS), interpolation))
        survival_curves = check_and_convert(survival_curves)
        time_coordinates = check_and_convert(time_coordinates)
        if survival_curves.ndim != 2:
            raise ValueError("survival_curves must be a 2-D array of shape (n_samples, n_time_points).")
        if time_coordinates.ndim == 1 and survival_curves.shape[1] != time_coordinates.shape[0]:
            raise ValueError("The number of time points in survival_curves and time_coordinates must be the same.")
        if time_coordinates.ndim == 2 and survival_curves.shape != time_coordinates.shape:
            raise ValueError("2-D time_coordinates must have the same shape as survival_curves.")

        self.n_samples = survival_curves.shape[0]
        # one grid for every curve, or one grid per curve (padded row by row into lists)
        self.shared_grid = time_coordinates.ndim == 1
        self.survival_curves, self.time_coordinates = zero_padding(survival_curves, time_coordinates)
        self.interpolation = interpolation

    def predict_survival(self, covariates: Optional[NumericArrayLike], times: NumericArrayLike) -> np.ndarray:
        rows = np.arange(self.n_samples) if covariates is None else \
            np.asarray(covariates, dtype=int).ravel()

        if self.shared_grid:
            return predict_multi_probs_from_curve(self.survival_curves[rows], self.time_coordinates, times,
                                                  self.interpolation)

        prob_mat = np.empty((len(rows), len(check_target_times(times))), dtype=float)
        for k, i in enumerate(rows):
            prob_mat[k] = predict_multi_probs_from_curve(self.survival_curves[i], self.time_coordinates[i], times,
                                                         self.interpolation)
        return prob_mat
