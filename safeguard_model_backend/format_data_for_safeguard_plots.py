"""
Plot data extraction for the safeguard relevance model.

Turns a SafeguardModelResults into the flat, JSON-serializable dict the frontend charts read:
cost curves, threat heatmap, intervention bars, crux summaries and the relevance verdict.
"""

import math
from typing import Any, Dict

import numpy as np

from safeguard_model_backend.safeguard_model import SafeguardModelResults


def sanitize_for_json(obj):
    """Recursively sanitize an object for JSON serialization.

    Converts numpy arrays and scalars to Python types and replaces float('inf'), float('-inf')
    and float('nan') with None, since these are not valid JSON values.
    """
    if isinstance(obj, dict):
        return {k: sanitize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [sanitize_for_json(item) for item in obj]
    elif isinstance(obj, np.ndarray):
        return sanitize_for_json(obj.tolist())
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, (float, np.floating)):
        if math.isinf(obj) or math.isnan(obj):
            return None
        return float(obj)
    else:
        return obj


def extract_plot_data(results: SafeguardModelResults) -> Dict[str, Any]:
    curves = results.cost_curves
    threat = results.threat
    relevance = results.relevance
    attackers = results.params.attackers

    data = {
        'years': curves.years,

        # Cost curves
        'training_costs': curves.training_costs,
        'fine_tune_costs': curves.fine_tune_costs,
        'training_costs_naive': curves.training_costs_naive,
        'fine_tune_costs_naive': curves.fine_tune_costs_naive,
        'training_rates': curves.training_rates,
        'fine_tune_rates': curves.fine_tune_rates,
        'physical_limit_regimes': curves.physical_limit_regimes,
        'floor_buys_years': results.floor_buys_years,

        # Capability
        'dangerous_capability': results.capability.dangerous_capability,
        'novel_capability': results.capability.novel_capability,

        # Safeguard robustness
        'break_gpu_hours': curves.break_gpu_hours,
        'break_cost': curves.break_cost,
        'break_costs_over_time': curves.break_costs_over_time,
        'steps_for_budget_threshold': curves.steps_for_budget_threshold,
        'benchmark_break_costs': curves.benchmark_break_costs,

        # Threat matrix and attacker populations
        'attackers': [
            {
                'name': a.name,
                'budget': a.budget,
                'count': a.count,
                'color_tag': a.color_tag,
                'first_year_can_train': threat.first_year_can_train[a.name],
            }
            for a in attackers
        ],
        'threat_matrix': threat.threat_matrix,
        'total_attackers': threat.total_attackers,
        'can_train_by_year': threat.can_train_by_year,
        'can_break_safeguards_by_year': threat.can_break_safeguards_by_year,
        'safeguards_block_by_year': threat.safeguards_block_by_year,
        'average_threat_at_assessment_year': threat.average_threat_at_assessment_year,
        'threat_summary': threat.threat_summary,

        # Interventions
        'intervention_values': [
            {'name': v.name, 'value': v.value, 'active': v.active}
            for v in results.intervention_values
        ],
        'top_intervention': results.top_intervention.name,

        # Chokepoints
        'chokepoints': results.chokepoints.chokepoints,
        'lab_setup_to_break_cost_ratio': results.chokepoints.lab_setup_to_break_cost_ratio,
        'training_to_break_cost_ratio': results.chokepoints.training_to_break_cost_ratio,
        'weakest_link': results.chokepoints.weakest_link,

        # Relevance verdict
        'blocked_pct_5': relevance.metrics.blocked_pct_5,
        'window_years': relevance.metrics.window_years,
        'break_cost_pct': relevance.metrics.break_cost_pct,
        'relevance_score': relevance.score,
        'relevance_level': relevance.level.value,
        'relevance_reason': relevance.reason,
        'relevance_rule': relevance.rule.value,
    }
    return sanitize_for_json(data)
