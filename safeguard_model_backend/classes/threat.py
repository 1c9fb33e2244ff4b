import numpy as np
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from safeguard_model_backend.classes.capability import CapabilityProfile, safeguard_effectiveness
from safeguard_model_backend.classes.cost_curves import CostCurves, first_affordable_year
from safeguard_model_backend.safeguard_model_parameters import AttackerProfile, InterventionParameters
from safeguard_model_backend.util import clamp

# Share of base threat that counts as "novel" when the attacker can only fine-tune
FINE_TUNE_NOVELTY_SHARE = 0.4
# Blend weights for base vs novel threat
BASE_THREAT_WEIGHT = 0.6
NOVEL_THREAT_WEIGHT = 0.4
# Lower bound on effective threat in the known-fraction division
MIN_EFFECTIVE_THREAT = 0.01
# Fraction of residual threat removed by compute governance
GOVERNANCE_REDUCTION_IF_CAN_TRAIN = 0.6
GOVERNANCE_REDUCTION_IF_FINE_TUNE_ONLY = 0.2
# Surveillance removes at most this fraction of residual threat
MAX_SURVEILLANCE_REDUCTION = 0.5

# Average residual threat thresholds for the threat summary
INSUFFICIENT_THREAT_LEVEL = 0.5
MODERATE_THREAT_LEVEL = 0.25


def residual_threat(
    budget: float,
    training_cost: float,
    fine_tune_cost: float,
    capability: CapabilityProfile,
    interventions: InterventionParameters,
) -> float:
    """
    Probability that one attacker succeeds at one year after all modeled interventions.

    The reductions compose multiplicatively in a fixed order: safeguards, novelty blend,
    synthesis screening, compute governance, surveillance. Reordering changes results.
    """
    can_train = budget >= training_cost
    can_fine_tune = budget >= fine_tune_cost
    if not can_train and not can_fine_tune:
        return 0.0

    if can_train:
        threat = capability.dangerous_capability
    else:
        safeguard_block = safeguard_effectiveness(interventions.safeguard_strength / 100, budget / fine_tune_cost)
        threat = capability.dangerous_capability * (1 - safeguard_block)

    threat_novelty = capability.novel_capability if can_train else threat * FINE_TUNE_NOVELTY_SHARE
    effective_threat = max(threat * BASE_THREAT_WEIGHT + threat_novelty * NOVEL_THREAT_WEIGHT, 0)
    residual = effective_threat

    # Screening catches known threats at full coverage and novel threats only at the novel-detection rate.
    # The floor on effective_threat makes known_frac jump near zero; this clamping is intentional.
    known_frac = 1 - (threat_novelty / max(effective_threat, MIN_EFFECTIVE_THREAT))
    coverage = interventions.screening_coverage / 100
    screening_block = coverage * known_frac + coverage * (interventions.screening_novel_detect / 100) * (1 - known_frac)
    residual *= (1 - screening_block)

    if training_cost >= interventions.compute_gov_threshold:
        residual *= (1 - (GOVERNANCE_REDUCTION_IF_CAN_TRAIN if can_train else GOVERNANCE_REDUCTION_IF_FINE_TUNE_ONLY))

    residual *= (1 - interventions.surveillance_eff / 100 * MAX_SURVEILLANCE_REDUCTION)
    return clamp(residual, 0.0, 1.0)


@dataclass(frozen=True)
class ThreatAssessment:
    threat_matrix : np.ndarray  # attacker x year
    total_attackers : float
    can_train_by_year : np.ndarray  # attacker population able to train from scratch
    can_break_safeguards_by_year : np.ndarray  # attacker population able to pay the break cost
    safeguards_block_by_year : np.ndarray  # fraction of fine-tune-only population priced out by the break cost
    first_year_can_train : Dict[str, Optional[int]]
    average_threat_at_assessment_year : float
    threat_summary : str


def summarize_threat(average_threat: float) -> str:
    if average_threat > INSUFFICIENT_THREAT_LEVEL:
        return "insufficient"
    if average_threat > MODERATE_THREAT_LEVEL:
        return "moderate"
    return "holding"


def safeguards_block_fraction(attackers: Sequence[AttackerProfile], training_cost, fine_tune_cost, break_cost) -> float:
    """
    Among attackers who can fine-tune but cannot train from scratch, the population share
    whose budget is below the cost of breaking the safeguards. 1 when nobody is in that range.
    """
    in_range = [a for a in attackers if a.budget >= fine_tune_cost and a.budget < training_cost]
    total_in_range = sum(a.count for a in in_range)
    if total_in_range <= 0:
        return 1.0
    blocked = sum(a.count for a in in_range if a.budget < break_cost)
    return blocked / total_in_range


def assess_threat(
    attackers: Sequence[AttackerProfile],
    cost_curves: CostCurves,
    capability: CapabilityProfile,
    interventions: InterventionParameters,
    assessment_year: int,
) -> ThreatAssessment:
    years = cost_curves.years
    training_costs = cost_curves.training_costs
    fine_tune_costs = cost_curves.fine_tune_costs
    break_costs = cost_curves.break_costs_over_time

    threat_matrix = np.array([
        [
            residual_threat(attacker.budget, training_costs[y], fine_tune_costs[y], capability, interventions)
            for y in years
        ]
        for attacker in attackers
    ])

    can_train_by_year = np.array([
        sum(a.count for a in attackers if a.budget >= training_costs[y]) for y in years
    ], dtype=float)
    can_break_safeguards_by_year = np.array([
        sum(a.count for a in attackers if a.budget >= break_costs[y]) for y in years
    ], dtype=float)
    safeguards_block_by_year = np.array([
        safeguards_block_fraction(attackers, training_costs[y], fine_tune_costs[y], break_costs[y]) for y in years
    ])

    average_threat = float(threat_matrix[:, assessment_year].mean())

    return ThreatAssessment(
        threat_matrix=threat_matrix,
        total_attackers=float(sum(a.count for a in attackers)),
        can_train_by_year=can_train_by_year,
        can_break_safeguards_by_year=can_break_safeguards_by_year,
        safeguards_block_by_year=safeguards_block_by_year,
        first_year_can_train={a.name: first_affordable_year(training_costs, a.budget) for a in attackers},
        average_threat_at_assessment_year=average_threat,
        threat_summary=summarize_threat(average_threat),
    )
