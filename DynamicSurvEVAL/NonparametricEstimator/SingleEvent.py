from dataclasses import dataclass, InitVar, field
import numpy as np


def step_lookup(
        step_times: np.ndarray,
        step_values: np.ndarray,
        prediction_times: np.ndarray,
        initial_value: float,
        left_continuous: bool = False
) -> np.ndarray:
    """
    Evaluate a step function that jumps at `step_times` and starts at `initial_value`.

    Parameters
    ----------
    step_times: np.ndarray, shape = (n_steps, )
        Sorted unique jump times.
    step_values: np.ndarray, shape = (n_steps, )
        Value of the function from each jump time (inclusive) to the next.
    prediction_times: np.ndarray
        Times to evaluate at, any shape.
    initial_value: float
        Value before the first jump.
    left_continuous: bool, default: False
        If True, return the limit from the left, f(t-), so that a jump happening exactly at t is not
        included yet. Otherwise return the right-continuous value f(t).

    Returns
    -------
    np.ndarray
        Function values, same shape as `prediction_times`. Beyond the last jump the last value is held.
    """
    index = np.digitize(prediction_times, step_times, right=left_continuous)
    return np.append(initial_value, step_values)[index]


@dataclass
class _RiskSetEstimator:
    """
    Shared counting process for the single-event estimators: unique times, number at risk, and
    number of events at each unique time.
    """
    event_times: InitVar[np.array]
    event_indicators: InitVar[np.array]

    # learned / derived attributes
    survival_times: np.array = field(init=False)
    population_count: np.array = field(init=False)
    events: np.array = field(init=False)
    survival_probabilities: np.array = field(init=False)

    def __post_init__(self, event_times, event_indicators):
        event_times = np.asarray(event_times, dtype=float)
        event_indicators = np.asarray(event_indicators, dtype=float)
        if event_times.shape != event_indicators.shape:
            raise ValueError("event_times and event_indicators must have the same shape.")

        unique_times, inverse, counts = np.unique(event_times, return_inverse=True, return_counts=True)
        self.survival_times = unique_times
        # at risk: everyone whose time is >= the current unique time
        self.population_count = np.flip(np.flip(counts).cumsum())
        self.events = np.bincount(inverse.ravel(), weights=event_indicators, minlength=unique_times.size)

    def predict_survival(self, prediction_times: np.array) -> np.array:
        """
        Predict the survival probabilities S(t) at the given prediction times (right-continuous).
        """
        return step_lookup(self.survival_times, self.survival_probabilities, prediction_times, 1.)

    def predict_survival_left(self, prediction_times: np.array) -> np.array:
        """
        Predict the left limits S(t-) of the survival function at the given prediction times.
        """
        return step_lookup(self.survival_times, self.survival_probabilities, prediction_times, 1.,
                           left_continuous=True)


@dataclass
class KaplanMeier(_RiskSetEstimator):
    """
    Kaplan-Meier product-limit estimator of the survival function.

    Fitting it on `1 - event_indicators` gives the censoring survival function G(t) used by the
    inverse probability of censoring weights.
    """
    cumulative_dens: np.array = field(init=False)
    probability_dens: np.array = field(init=False)

    def __post_init__(self, event_times, event_indicators):
        super().__post_init__(event_times, event_indicators)
        event_ratios = 1 - self.events / self.population_count
        self.survival_probabilities = np.cumprod(event_ratios)
        self.cumulative_dens = 1 - self.survival_probabilities
        self.probability_dens = np.diff(np.append(0, self.cumulative_dens))

    def predict(self, prediction_times: np.array) -> np.array:
        """
        Predict the survival probabilities at the given prediction times.
        Parameters
        ----------
        prediction_times: np.array
            The times at which to predict the survival probabilities.
        Returns
        -------
        np.array
            The predicted survival probabilities at the given times.
        """
        return self.predict_survival(prediction_times)


@dataclass
class NelsonAalen(_RiskSetEstimator):
    """
    Implementation of the Nelson-Aalen estimator for cumulative hazard function.
    The survival function is the Breslow estimate exp(-H(t)), which never reaches exactly 0.
    """
    hazard: np.array = field(init=False)
    cumulative_hazard: np.array = field(init=False)

    def __post_init__(self, event_times, event_indicators):
        super().__post_init__(event_times, event_indicators)
        self.hazard = self.events / self.population_count
        self.cumulative_hazard = np.cumsum(self.hazard)
        self.survival_probabilities = np.exp(-self.cumulative_hazard)

    def predict(self, prediction_times: np.array) -> np.array:
        """
        Predict the cumulative hazard based on the survival times.
        Parameters
        ----------
        prediction_times: np.array
            The times at which to predict the cumulative hazard.
        Returns
        -------
        np.array
            The predicted cumulative hazard at the given times.
        """
        return step_lookup(self.survival_times, self.cumulative_hazard, prediction_times, 0.)
