"""
Parameter sweeps for sensitivity analysis.

Each evaluation is independent, so a sweep can be spread across worker processes without
any coordination. Rows come back in the order of the input values either way.
"""

import logging
from concurrent.futures import ProcessPoolExecutor
from typing import Optional, Sequence

import pandas as pd

from safeguard_model_backend.safeguard_model import evaluate
from safeguard_model_backend.safeguard_model_parameters import SafeguardModelParameters

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    'break_cost',
    'blocked_pct_5',
    'window_years',
    'break_cost_pct',
    'relevance_score',
    'relevance_level',
    'average_threat_at_assessment_year',
]


def summarize(params: SafeguardModelParameters) -> dict:
    """Evaluate one parameter set and keep only the headline metrics."""
    results = evaluate(params)
    relevance = results.relevance
    return {
        'break_cost': results.cost_curves.break_cost,
        'blocked_pct_5': relevance.metrics.blocked_pct_5,
        'window_years': relevance.metrics.window_years,
        'break_cost_pct': relevance.metrics.break_cost_pct,
        'relevance_score': relevance.score,
        'relevance_level': relevance.level.value,
        'average_threat_at_assessment_year': results.threat.average_threat_at_assessment_year,
    }


def sweep_parameter(
    base_params: SafeguardModelParameters,
    field_name: str,
    values: Sequence,
    max_workers: Optional[int] = None,
) -> pd.DataFrame:
    """
    Evaluate the model once per value of a single dot-notation parameter.

    Args:
        base_params: Parameters held fixed across the sweep
        field_name: Dot-notation parameter to vary, e.g. 'safeguard_robustness.steps_to_break'
        values: Values to try, in order
        max_workers: If given and > 1, evaluate in that many worker processes

    Returns:
        DataFrame with one row per value: the swept value followed by SUMMARY_COLUMNS

    Raises:
        ValidationError: if `field_name` is not a parameter, or any swept value is outside its domain
    """
    base_params.require_parameter(field_name)
    param_sets = [base_params.update_from_dict({field_name: value}) for value in values]
    logger.info("Sweeping %s over %d values", field_name, len(param_sets))

    if max_workers is not None and max_workers > 1:
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            rows = list(executor.map(summarize, param_sets))
    else:
        rows = [summarize(p) for p in param_sets]

    df = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    # A Series keeps list-valued sweeps (attacker lists) one value per row
    df.insert(0, field_name, pd.Series(list(values), index=df.index))
    return df
