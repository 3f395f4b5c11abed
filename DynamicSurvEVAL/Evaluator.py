import numpy as np
import pandas as pd
from abc import ABC
from typing import Optional, Tuple, Union

from DynamicSurvEVAL.Evaluations.custom_types import Numeric, NumericArrayLike
from DynamicSurvEVAL.Evaluations.util import (INTERPOLATIONS, check_and_convert, check_event_data, check_target_times,
                                              check_survival_curves)
from DynamicSurvEVAL.Evaluations.AreaUnderROCurve import weighted_roc_curve, auc_multiple_points
from DynamicSurvEVAL.Evaluations.BrierScore import DENOMINATORS, weighted_brier_scores, integrated_brier_score
from DynamicSurvEVAL.Evaluations.CensoringWeights import CensoringDistribution, resolve_censoring
from DynamicSurvEVAL.Predictors import CurvePredictor, SurvivalPredictor


class DynamicEvaluator:
    def __init__(
            self,
            pred_survs: NumericArrayLike,
            time_coordinates: NumericArrayLike,
            event_times: NumericArrayLike,
            event_indicators: NumericArrayLike,
            train_event_times: Optional[NumericArrayLike] = None,
            train_event_indicators: Optional[NumericArrayLike] = None,
            interpolation: str = "Linear",
            censoring_estimator="KaplanMeier",
            denominator: str = "contributing",
            normalize_ibs: bool = False,
            validate: bool = False,
            n_jobs: int = 1,
            verbose: bool = False
    ):
        """
        Initialize the Evaluator

        Parameters
        ----------
        pred_survs: NumericArrayLike, shape = (n_samples, n_time_points)
            Predicted survival curves for the testing samples.
        time_coordinates: NumericArrayLike,
            Accept shapes: (n_time_points,) or (n_samples, n_time_points).
            Time coordinates corresponding to the survival curves.
        event_times: NumericArrayLike, shape = (n_samples, )
            Actual event/censor time for the testing samples.
        event_indicators: NumericArrayLike, shape = (n_samples, )
            Binary indicators of censoring for the testing samples
        train_event_times: Optional[NumericArrayLike], shape = (n_train_samples, ), default: None
            Actual event/censor time for the training samples. When given, the censoring distribution is fitted
            on the training sample, otherwise on the testing sample.
        train_event_indicators: Optional[NumericArrayLike], shape = (n_train_samples, ), default: None
            Binary indicators of censoring for the training samples
        interpolation: str, default = "Linear"
            Method for interpolating the curves at the evaluation times. Available options are ['Linear', 'Pchip'].
        censoring_estimator: str, fitted estimator, callable or CensoringDistribution, default = "KaplanMeier"
            Strategy for the censoring survival function G. Named options are ['KaplanMeier', 'NelsonAalen'].
        denominator: str, default = "contributing"
            Brier score denominator, 'contributing' (observations with a defined weight) or 'all' (sample size).
        normalize_ibs: bool, default = False
            Whether the integrated Brier score is divided by the time span. The raw area is reported by default.
        validate: bool, default = False
            Whether to check that the predicted curves are within [0, 1] and non-increasing.
        n_jobs: int, default = 1
            Number of joblib workers used for the AUC over several evaluation times.
        verbose: bool, default = False
            Show progress bars.
        """
        if interpolation not in INTERPOLATIONS:
            raise ValueError("interpolation must be one of {}, got '{}' instead.".format(
                list(INTERPOLATIONS), interpolation))
        if denominator not in DENOMINATORS:
            raise ValueError("denominator must be one of {}, got '{}' instead.".format(
                list(DENOMINATORS), denominator))

        pred_survs = check_and_convert(pred_survs)
        if validate:
            check_survival_curves(pred_survs)
        self._predictor = CurvePredictor(pred_survs, time_coordinates, interpolation)
        self._pred_survs = pred_survs
        self._time_coordinates = check_and_convert(time_coordinates)

        self.event_times, self.event_indicators = check_event_data(event_times, event_indicators)
        if self._pred_survs.shape[0] != self.event_times.shape[0]:
            raise ValueError("The number of predicted curves ({}) and observations ({}) must be the same.".format(
                self._pred_survs.shape[0], self.event_times.shape[0]))

        if (train_event_times is not None) and (train_event_indicators is not None):
            train_event_times, train_event_indicators = check_event_data(train_event_times, train_event_indicators)
        self.train_event_times = train_event_times
        self.train_event_indicators = train_event_indicators

        self.interpolation = interpolation
        self.denominator = denominator
        self.normalize_ibs = normalize_ibs
        self.validate = validate
        self.n_jobs = n_jobs
        self.verbose = verbose

        # the censoring distribution is fitted once, before any weight is queried
        self.censoring = resolve_censoring(censoring_estimator, self.event_times, self.event_indicators,
                                           self.train_event_times, self.train_event_indicators)

    @classmethod
    def from_predictor(
            cls,
            predictor: SurvivalPredictor,
            covariates,
            target_times: NumericArrayLike,
            event_times: NumericArrayLike,
            event_indicators: NumericArrayLike,
            **kwargs
    ) -> "DynamicEvaluator":
        """
        Query a fitted model for its survival probabilities at the evaluation times and build the evaluator
        on that grid.
        """
        target_times = check_target_times(target_times)
        if np.any(np.diff(target_times) <= 0):
            raise ValueError("target_times must be strictly increasing.")
        pred_survs = predictor.predict_survival(covariates, target_times)
        return cls(pred_survs, target_times, event_times, event_indicators, **kwargs)

    @property
    def pred_survs(self):
        return self._pred_survs

    @pred_survs.setter
    def pred_survs(self, val: NumericArrayLike):
        print("Setter called. Resetting predicted curves for this evaluator.")
        val = check_and_convert(val)
        if self.validate:
            check_survival_curves(val)
        self._predictor = CurvePredictor(val, self._time_coordinates, self.interpolation)
        self._pred_survs = val

    @property
    def time_coordinates(self):
        return self._time_coordinates

    def _default_target_time(self) -> float:
        # median time of all the event/censor times from the training and test sets
        event_times = np.concatenate((self.event_times, self.train_event_times)) \
            if self.train_event_times is not None else self.event_times
        return float(np.quantile(event_times, 0.5))

    def _default_target_times(self) -> np.ndarray:
        return np.unique(np.quantile(self.event_times, [0.25, 0.5, 0.75]))

    def _censoring_for(self, IPCW_weighted: bool) -> Optional[CensoringDistribution]:
        return self.censoring if IPCW_weighted else None

    def predict_multi_probabilities_from_curve(
            self,
            target_times: NumericArrayLike
    ) -> np.ndarray:
        """
        Calculate the survival probability at multiple time points from the predicted curve.

        Parameters
        ----------
        target_times: NumericArrayLike, shape = (n_target_times)
            Time points at which the probability of survival is to be predicted.

        Returns
        -------
        prob_mat: np.ndarray, shape = (n_samples, n_target_times)
            Predicted probabilities of survival at the target time points.
        """
        return self._predictor.predict_survival(None, target_times)

    def predict_probability_from_curve(
            self,
            target_time: Numeric
    ) -> np.ndarray:
        """
        Calculate the survival probability of every sample at a single time point.
        """
        return self.predict_multi_probabilities_from_curve(np.array([target_time], dtype=float))[:, 0]

    def brier_score(
            self,
            target_time: Optional[Numeric] = None,
            IPCW_weighted: bool = True
    ) -> float:
        """
        Calculate the Brier score at a given time point from the predicted survival curve.

        Parameters
        ----------
        target_time: float, int, or None, default = None
            Time point at which the Brier score is to be calculated. If None, the Brier score is calculated at the
            median time of all the event/censor times from the training and test sets.
        IPCW_weighted: bool, default = True
            Whether to use IPCW weighting for the Brier score.
        :return: float
            The Brier score at the target time point, NaN if no observation contributes.
        """
        if target_time is None:
            target_time = self._default_target_time()

        return self.brier_score_multiple_points(np.array([target_time], dtype=float), IPCW_weighted)[0].item()

    def brier_score_multiple_points(
            self,
            target_times: NumericArrayLike,
            IPCW_weighted: bool = True,
            return_counts: bool = False
    ) -> Union[np.ndarray, Tuple[np.ndarray, np.ndarray]]:
        """
        Calculate multiple Brier scores at multiple specific times.

        Parameters
        ----------
        target_times: NumericArrayLike
            The specific time points for which to estimate the Brier scores.
        IPCW_weighted: bool, default = True
            Whether to use IPCW weighting for the Brier score.
        return_counts: bool, default = False
            Whether to also return the number of contributing observations at each time.
        :return:
            Values of multiple Brier scores (and the contributing counts).
        """
        target_times = check_target_times(target_times)
        pred_probs_mat = self.predict_multi_probabilities_from_curve(target_times)

        brier_scores, counts = weighted_brier_scores(
            pred_mat=pred_probs_mat,
            event_times=self.event_times,
            event_indicators=self.event_indicators,
            target_times=target_times,
            censoring=self._censoring_for(IPCW_weighted),
            denominator=self.denominator
        )
        if return_counts:
            return brier_scores, counts
        return brier_scores

    def integrated_brier_score(
            self,
            target_times: Optional[NumericArrayLike] = None,
            num_points: Optional[int] = None,
            IPCW_weighted: bool = True
    ) -> float:
        """
        Calculate the integrated Brier score (IBS) from the predicted survival curve.

        Parameters
        ----------
        target_times: NumericArrayLike, default = None
            Strictly increasing evaluation times to integrate over.
        num_points: int, default = None
            Used when `target_times` is None: number of evenly spaced points from 0 to the largest observed time.
            If both are None, the unique censor times of the testing set are used.
        IPCW_weighted: bool, default = True
            Whether to use IPCW weighting for the Brier score.
        :return: float
            The integrated Brier score, raw area unless the evaluator normalizes it.
        """
        if target_times is None:
            if num_points is None:
                censored_times = self.event_times[~self.event_indicators]
                target_times = np.unique(censored_times)
                if target_times.size == 0:
                    raise ValueError("You don't have censor data in the test set, "
                                     "please provide \"target_times\" or \"num_points\" for calculating IBS")
            else:
                max_target_time = np.max(np.concatenate((self.event_times, self.train_event_times))) \
                    if self.train_event_times is not None else np.max(self.event_times)
                target_times = np.linspace(0, max_target_time, num_points)
        target_times = check_target_times(target_times)

        b_scores = self.brier_score_multiple_points(target_times, IPCW_weighted)
        return integrated_brier_score(b_scores, target_times, normalize=self.normalize_ibs)

    def auc(
            self,
            target_time: Optional[Numeric] = None,
            IPCW_weighted: bool = True
    ) -> float:
        """
        Calculate the area under the ROC curve (AUC) score at a given time point from the predicted survival curve.

        Parameters
        ----------
        target_time: float, int, or None, default = None
            Time point at which the AUC score is to be calculated. If None, the AUC score is calculated at the
            median time of all the event/censor times from the training and test sets.
        IPCW_weighted: bool, default = True
            Whether to weight the cases by the inverse probability of censoring.

        Returns
        -------
        auc_score: float
            The AUC score at the target time point, NaN if only one class contributes.
        """
        if target_time is None:
            target_time = self._default_target_time()

        return self.auc_multiple_points(np.array([target_time], dtype=float), IPCW_weighted)[0].item()

    def auc_multiple_points(
            self,
            target_times: NumericArrayLike,
            IPCW_weighted: bool = True,
            return_counts: bool = False
    ) -> Union[np.ndarray, Tuple[np.ndarray, np.ndarray]]:
        """
        Calculate the AUC scores at multiple time points.
        """
        target_times = check_target_times(target_times)
        auc_scores, counts = auc_multiple_points(
            pred_mat=self.predict_multi_probabilities_from_curve(target_times),
            event_times=self.event_times,
            event_indicators=self.event_indicators,
            target_times=target_times,
            censoring=self._censoring_for(IPCW_weighted),
            n_jobs=self.n_jobs,
            verbose=self.verbose
        )
        if return_counts:
            return auc_scores, counts
        return auc_scores

    def roc_curve(
            self,
            target_time: Optional[Numeric] = None,
            IPCW_weighted: bool = True
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Weighted ROC curve at a time point.

        Returns
        -------
        fpr, tpr, thresholds: np.ndarray
            1 - specificity, sensitivity, and the decreasing thresholds on the risk score 1 - S(t).
            Empty if only one class contributes.
        """
        if target_time is None:
            target_time = self._default_target_time()

        fpr, tpr, thresholds, _ = weighted_roc_curve(
            predict_probs=self.predict_probability_from_curve(target_time),
            event_times=self.event_times,
            event_indicators=self.event_indicators,
            target_time=target_time,
            censoring=self._censoring_for(IPCW_weighted)
        )
        return fpr, tpr, thresholds

    def metrics_table(
            self,
            target_times: Optional[NumericArrayLike] = None,
            IPCW_weighted: bool = True
    ) -> pd.DataFrame:
        """
        Brier score and ROC AUC at each evaluation time.

        Returns
        -------
        pd.DataFrame
            Columns: evaluation_time, metric_name ('brier' or 'roc_auc'), estimate, contributing_count.
        """
        target_times = self._default_target_times() if target_times is None else check_target_times(target_times)
        brier_scores, brier_counts = self.brier_score_multiple_points(target_times, IPCW_weighted, return_counts=True)
        auc_scores, auc_counts = self.auc_multiple_points(target_times, IPCW_weighted, return_counts=True)

        frames = [
            pd.DataFrame({"evaluation_time": target_times, "metric_name": "brier",
                          "estimate": brier_scores, "contributing_count": brier_counts}),
            pd.DataFrame({"evaluation_time": target_times, "metric_name": "roc_auc",
                          "estimate": auc_scores, "contributing_count": auc_counts}),
        ]
        return pd.concat(frames, ignore_index=True)

    def summary(
            self,
            target_times: Optional[NumericArrayLike] = None,
            IPCW_weighted: bool = True
    ) -> pd.DataFrame:
        """
        Single-row table with the integrated Brier score over the evaluation times.
        """
        target_times = self._default_target_times() if target_times is None else check_target_times(target_times)
        ibs = self.integrated_brier_score(target_times=target_times, IPCW_weighted=IPCW_weighted)
        return pd.DataFrame({"metric_name": ["brier_integrated"], "estimate": [ibs]})

    def roc_curve_table(
            self,
            target_times: Optional[NumericArrayLike] = None,
            IPCW_weighted: bool = True
    ) -> pd.DataFrame:
        """
        Points of the weighted ROC curves, for plotting.

        Returns
        -------
        pd.DataFrame
            Columns: evaluation_time, threshold, sensitivity, specificity. Times with an undefined ROC curve
            have no rows.
        """
        target_times = self._default_target_times() if target_times is None else check_target_times(target_times)
        frames = []
        for target_time in target_times:
            fpr, tpr, thresholds = self.roc_curve(target_time, IPCW_weighted)
            frames.append(pd.DataFrame({"evaluation_time": target_time, "threshold": thresholds,
                                        "sensitivity": tpr, "specificity": 1 - fpr}))
        return pd.concat(frames, ignore_index=True)


class PycoxEvaluator(DynamicEvaluator, ABC):
    def __init__(
            self,
            surv: pd.DataFrame,
            event_times: NumericArrayLike,
            event_indicators: NumericArrayLike,
            train_event_times: Optional[NumericArrayLike] = None,
            train_event_indicators: Optional[NumericArrayLike] = None,
            **kwargs
    ):
        """
        Evaluator for survival models in PyCox packages.

        Parameters
        ----------
        surv: pd.DataFrame, shape = (n_time_points, n_samples)
            Predicted survival curves for the testing samples
            DataFrame index represents the time coordinates for the given curves.
            DataFrame value represents transpose of the survival probabilities.
        event_times: NumericArrayLike, shape = (n_samples,)
            Event times for the testing samples.
        event_indicators: NumericArrayLike, shape = (n_samples,)
            Event indicators for the testing samples.
        train_event_times: NumericArrayLike, shape = (n_samples,), optional
            Event times for the training samples.
        train_event_indicators: NumericArrayLike, shape = (n_samples,), optional
            Event indicators for the training samples.
        kwargs:
            Options forwarded to DynamicEvaluator.
        """
        time_coordinates = surv.index.values.astype(float)
        predicted_survival_curves = surv.values.T.astype(float)
        # Pycox models can sometimes obtain -0 as survival probabilities. Need to convert that to 0.
        predicted_survival_curves[predicted_survival_curves < 0] = 0
        super(PycoxEvaluator, self).__init__(predicted_survival_curves, time_coordinates, event_times,
                                             event_indicators, train_event_times, train_event_indicators, **kwargs)


class LifelinesEvaluator(PycoxEvaluator, ABC):
    def __init__(
            self,
            surv: pd.DataFrame,
            event_times: NumericArrayLike,
            event_indicators: NumericArrayLike,
            train_event_times: Optional[NumericArrayLike] = None,
            train_event_indicators: Optional[NumericArrayLike] = None,
            **kwargs
    ):
        """
        Evaluator for survival models in Lifelines packages.

        Parameters
        ----------
        surv: pd.DataFrame, shape = (n_time_points, n_samples)
            Predicted survival curves for the testing samples, as returned by `predict_survival_function`.
        event_times: NumericArrayLike, shape = (n_samples,)
            Event times for the testing samples.
        event_indicators: NumericArrayLike, shape = (n_samples,)
            Event indicators for the testing samples.
        train_event_times: NumericArrayLike, shape = (n_samples,), optional
            Event times for the training samples.
        train_event_indicators: NumericArrayLike, shape = (n_samples,), optional
            Event indicators for the training samples.
        kwargs:
            Options forwarded to DynamicEvaluator.
        """
        super(LifelinesEvaluator, self).__init__(surv, event_times, event_indicators, train_event_times,
                                                 train_event_indicators, **kwargs)


class ScikitSurvivalEvaluator(DynamicEvaluator, ABC):
    def __init__(
            self,
            surv,
            event_times: NumericArrayLike,
            event_indicators: NumericArrayLike,
            train_event_times: Optional[NumericArrayLike] = None,
            train_event_indicators: Optional[NumericArrayLike] = None,
            **kwargs
    ):
        """
        Evaluator for survival models in scikit-survival packages.

        Parameters
        ----------
        surv: shape = (n_samples,)
            Predicted survival curves for the testing samples from scikit-survival model.
            Each element is a scikit-survival customized object.
            '.x' attribute is the time coordinates for the given curve. '.y' attribute is the survival probabilities.
        event_times: NumericArrayLike, shape = (n_samples,)
            Event times for the testing samples.
        event_indicators: NumericArrayLike, shape = (n_samples,)
            Event indicators for the testing samples.
        train_event_times: NumericArrayLike, shape = (n_samples,), optional
            Event times for the training samples.
        train_event_indicators: NumericArrayLike, shape = (n_samples,), optional
            Event indicators for the training samples.
        kwargs:
            Options forwarded to DynamicEvaluator.
        """
        time_coordinates = np.asarray(surv[0].x, dtype=float)
        predict_curves = []
        for i in range(len(surv)):
            if not np.array_equal(time_coordinates, np.asarray(surv[i].x, dtype=float)):
                raise KeyError("{}-th survival curve does not have same time coordinates".format(i))
            predict_curves.append(np.asarray(surv[i].y, dtype=float))
        predicted_curves = np.array(predict_curves)
        super(ScikitSurvivalEvaluator, self).__init__(predicted_curves, time_coordinates, event_times,
                                                      event_indicators, train_event_times, train_event_indicators,
                                                      **kwargs)
