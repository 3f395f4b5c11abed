from DynamicSurvEVAL.Evaluator import DynamicEvaluator
from DynamicSurvEVAL.Evaluator import PycoxEvaluator, ScikitSurvivalEvaluator, LifelinesEvaluator
from DynamicSurvEVAL.Predictors import SurvivalPredictor, CurvePredictor, LifelinesPredictor, ScikitSurvivalPredictor

from DynamicSurvEVAL.Evaluations.AreaUnderROCurve import auc, auc_multiple_points, weighted_roc_curve
from DynamicSurvEVAL.Evaluations.BinaryOutcome import OutcomeLabel, encode_outcome, encode_outcomes
from DynamicSurvEVAL.Evaluations.BrierScore import (single_brier_score, brier_multiple_points, weighted_brier_scores,
                                                    integrated_brier_score)
from DynamicSurvEVAL.Evaluations.CensoringWeights import CensoringDistribution, ipcw_weights, outcome_weights
from DynamicSurvEVAL.NonparametricEstimator.SingleEvent import KaplanMeier, NelsonAalen

from DynamicSurvEVAL.version import __version__

__all__ = [
    'DynamicEvaluator', 'PycoxEvaluator', 'ScikitSurvivalEvaluator', 'LifelinesEvaluator',
    'SurvivalPredictor', 'CurvePredictor', 'LifelinesPredictor', 'ScikitSurvivalPredictor',
    'auc', 'auc_multiple_points', 'weighted_roc_curve',
    'OutcomeLabel', 'encode_outcome', 'encode_outcomes',
    'single_brier_score', 'brier_multiple_points', 'weighted_brier_scores', 'integrated_brier_score',
    'CensoringDistribution', 'ipcw_weights', 'outcome_weights',
    'KaplanMeier', 'NelsonAalen',
    '__version__'
]
