import logging
from dataclasses import dataclass
from typing import List

from safeguard_model_backend.classes.capability import CapabilityProfile, compute_capability_profile
from safeguard_model_backend.classes.cost_curves import CostCurves, compute_cost_curves
from safeguard_model_backend.classes.decision import (
    ChokepointComparison,
    InterventionValue,
    RelevanceAssessment,
    assess_relevance,
    compare_chokepoints,
    compute_intervention_values,
    compute_relevance_metrics,
    floor_buys_years,
    top_intervention,
)
from safeguard_model_backend.classes.threat import ThreatAssessment, assess_threat
from safeguard_model_backend.safeguard_model_parameters import HORIZON_YEARS, SafeguardModelParameters
from safeguard_model_backend.util import ensure_finite

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SafeguardModelResults:
    params : SafeguardModelParameters
    cost_curves : CostCurves
    capability : CapabilityProfile
    threat : ThreatAssessment
    intervention_values : List[InterventionValue]
    top_intervention : InterventionValue
    relevance : RelevanceAssessment
    floor_buys_years : int
    chokepoints : ChokepointComparison


# ============================================================================
# EVALUATION: one pass of the cost -> capability -> threat -> decision pipeline
# ============================================================================

def evaluate(params: SafeguardModelParameters) -> SafeguardModelResults:
    """
    Evaluate the safeguard relevance model for one parameter set.

    Pure and deterministic: no I/O and no state is kept between calls, so identical
    parameters always give identical results and calls may run concurrently.

    Raises:
        ValidationError: if any parameter is outside its documented domain.
    """
    params.validate()

    assessment_year = params.decision.assessment_year
    reference_attacker = params.reference_attacker()

    # ========== Leaves: cost curves and capability ==========
    cost_curves = compute_cost_curves(params.compute_costs, params.safeguard_robustness, HORIZON_YEARS)
    capability = compute_capability_profile(params.compute_costs.model_size_b, params.capability)

    # ========== Threat matrix and attacker affordability ==========
    threat = assess_threat(params.attackers, cost_curves, capability, params.interventions, assessment_year)

    # ========== Decision metrics and relevance verdict ==========
    metrics = compute_relevance_metrics(cost_curves, threat, reference_attacker, assessment_year, HORIZON_YEARS)
    relevance = assess_relevance(metrics)

    intervention_values = compute_intervention_values(cost_curves, threat, capability, params.interventions, assessment_year)

    results = SafeguardModelResults(
        params=params,
        cost_curves=cost_curves,
        capability=capability,
        threat=threat,
        intervention_values=intervention_values,
        top_intervention=top_intervention(intervention_values),
        relevance=relevance,
        floor_buys_years=floor_buys_years(cost_curves, reference_attacker, HORIZON_YEARS),
        chokepoints=compare_chokepoints(cost_curves),
    )
    _check_results_are_finite(results)

    logger.debug(
        "Relevance %s (score %.1f): blocked=%.1f%% window=%dy break_cost=%.2f%%",
        relevance.level.value, relevance.score,
        metrics.blocked_pct_5, metrics.window_years, metrics.break_cost_pct,
    )
    return results


def _check_results_are_finite(results: SafeguardModelResults):
    curves = results.cost_curves
    ensure_finite("cost_curves", {
        "training_costs": curves.training_costs,
        "fine_tune_costs": curves.fine_tune_costs,
        "training_costs_naive": curves.training_costs_naive,
        "fine_tune_costs_naive": curves.fine_tune_costs_naive,
        "training_rates": curves.training_rates,
        "fine_tune_rates": curves.fine_tune_rates,
        "break_costs_over_time": curves.break_costs_over_time,
        "break_cost": curves.break_cost,
        "steps_for_budget_threshold": curves.steps_for_budget_threshold,
    })
    ensure_finite("capability", [results.capability.dangerous_capability, results.capability.novel_capability])
    ensure_finite("threat_matrix", results.threat.threat_matrix)
    ensure_finite("relevance_score", results.relevance.score)
