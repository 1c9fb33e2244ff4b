"""
Decision stage: is continued investment in model safeguards justified?

Aggregates the threat assessment and cost curves into three metrics and classifies them
with an ordered list of guarded rules. The first rule whose guard matches decides the
score and the reason, so precedence is exactly the order of RELEVANCE_RULES.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from safeguard_model_backend.classes.capability import CapabilityProfile
from safeguard_model_backend.classes.cost_curves import CostCurves, first_affordable_year
from safeguard_model_backend.classes.threat import ThreatAssessment
from safeguard_model_backend.safeguard_model_parameters import AttackerProfile, InterventionParameters
from safeguard_model_backend.util import clamp

HIGH_RELEVANCE_SCORE = 60
MARGINAL_RELEVANCE_SCORE = 30

# Fixed costs of other chokepoints in the bioweapon development chain ($)
LAB_SETUP_COST = 100000
OTHER_CHOKEPOINT_COSTS = [
    ("Unscreened DNA synthesis", 100000, "~$0.20/bp × 500K bp genome"),
    ("Benchtop DNA printer", 100000, "Equipment + consumables"),
    ("Basic BSL-2 lab setup", LAB_SETUP_COST, "Space, equipment, supplies"),
    ("BSL-3 lab setup", 1000000, "Containment infrastructure"),
    ("Hire domain expert (1 yr)", 250000, "Salary + recruiting"),
]


class RelevanceLevel(Enum):
    LOW = "low"
    MARGINAL = "marginal"
    HIGH = "high"


class RelevanceRuleTag(Enum):
    INEFFECTIVE = "ineffective"
    OBSOLETE = "obsolete_before_they_matter"
    TRIVIAL_BARRIER = "trivial_barrier"
    SAFEGUARDS_HAVE_VALUE = "safeguards_have_value"
    MARGINAL_VALUE = "marginal_value"


@dataclass(frozen=True)
class RelevanceMetrics:
    blocked_pct_5 : float  # % of fine-tune-only attackers priced out at the assessment year
    window_years : int  # years until the reference attacker can train from scratch
    break_cost_pct : float  # break cost as % of the reference attacker's budget


@dataclass(frozen=True)
class RelevanceRule:
    tag : RelevanceRuleTag
    applies : Callable[[RelevanceMetrics], bool]
    score : Callable[[RelevanceMetrics], float]
    reason : Callable[[RelevanceMetrics], str]


RELEVANCE_RULES: List[RelevanceRule] = [
    RelevanceRule(
        tag=RelevanceRuleTag.INEFFECTIVE,
        applies=lambda m: m.blocked_pct_5 < 20,
        score=lambda m: max(0.0, m.blocked_pct_5),
        reason=lambda m: f"Only {m.blocked_pct_5:.0f}% of attackers blocked: safeguards ineffective at current robustness",
    ),
    RelevanceRule(
        tag=RelevanceRuleTag.OBSOLETE,
        applies=lambda m: m.window_years < 3,
        score=lambda m: min(30.0, m.blocked_pct_5 * 0.5),
        reason=lambda m: f"Training accessible to small groups in {m.window_years}y: safeguards obsolete before they matter",
    ),
    RelevanceRule(
        tag=RelevanceRuleTag.TRIVIAL_BARRIER,
        applies=lambda m: m.break_cost_pct < 1,
        score=lambda m: min(40.0, m.blocked_pct_5 * 0.6),
        reason=lambda m: f"Breaking cost is {m.break_cost_pct:.1f}% of attacker budget: trivial barrier",
    ),
    RelevanceRule(
        tag=RelevanceRuleTag.SAFEGUARDS_HAVE_VALUE,
        applies=lambda m: m.blocked_pct_5 >= 50 and m.window_years >= 5 and m.break_cost_pct >= 10,
        score=lambda m: min(100.0, m.blocked_pct_5 + m.window_years * 2 + m.break_cost_pct * 0.5),
        reason=lambda m: (
            f"{m.blocked_pct_5:.0f}% blocked, {m.window_years}y window, "
            f"{m.break_cost_pct:.0f}% of budget: safeguards have value"
        ),
    ),
    RelevanceRule(
        tag=RelevanceRuleTag.MARGINAL_VALUE,
        applies=lambda m: True,
        score=lambda m: min(70.0, m.blocked_pct_5 * 0.7 + m.window_years * 2),
        reason=lambda m: f"Marginal value: {m.blocked_pct_5:.0f}% blocked, {m.window_years}y window",
    ),
]


@dataclass(frozen=True)
class RelevanceAssessment:
    score : float
    level : RelevanceLevel
    reason : str
    rule : RelevanceRuleTag
    metrics : RelevanceMetrics


def relevance_level(score: float) -> RelevanceLevel:
    if score >= HIGH_RELEVANCE_SCORE:
        return RelevanceLevel.HIGH
    if score >= MARGINAL_RELEVANCE_SCORE:
        return RelevanceLevel.MARGINAL
    return RelevanceLevel.LOW


def assess_relevance(metrics: RelevanceMetrics, rules: List[RelevanceRule] = RELEVANCE_RULES) -> RelevanceAssessment:
    """Apply the first matching rule. Depends only on the three metrics."""
    for rule in rules:
        if rule.applies(metrics):
            score = clamp(rule.score(metrics), 0.0, 100.0)
            return RelevanceAssessment(
                score=score,
                level=relevance_level(score),
                reason=rule.reason(metrics),
                rule=rule.tag,
                metrics=metrics,
            )
    raise ValueError(f"No relevance rule matched {metrics}")


def compute_relevance_metrics(
    cost_curves: CostCurves,
    threat: ThreatAssessment,
    reference_attacker: AttackerProfile,
    assessment_year: int,
    horizon_years: int,
) -> RelevanceMetrics:
    real_train_year = first_affordable_year(cost_curves.training_costs, reference_attacker.budget)
    return RelevanceMetrics(
        blocked_pct_5=clamp(float(threat.safeguards_block_by_year[assessment_year]) * 100, 0.0, 100.0),
        window_years=horizon_years if real_train_year is None else real_train_year,
        break_cost_pct=cost_curves.break_cost / reference_attacker.budget * 100,
    )


def floor_buys_years(cost_curves: CostCurves, reference_attacker: AttackerProfile, horizon_years: int) -> int:
    """Extra years before the reference attacker can train, relative to an undamped, floorless decline."""
    naive_year = first_affordable_year(cost_curves.training_costs_naive, reference_attacker.budget)
    real_year = first_affordable_year(cost_curves.training_costs, reference_attacker.budget)
    return (horizon_years if real_year is None else real_year) - (horizon_years if naive_year is None else naive_year)


@dataclass(frozen=True)
class InterventionValue:
    name : str
    value : float
    active : bool


def compute_intervention_values(
    cost_curves: CostCurves,
    threat: ThreatAssessment,
    capability: CapabilityProfile,
    interventions: InterventionParameters,
    assessment_year: int,
) -> List[InterventionValue]:
    """Marginal value of each intervention at the assessment year, on a 0-100 scale."""
    training_cost = float(cost_curves.training_costs[assessment_year])
    gov_threshold = interventions.compute_gov_threshold
    blocked = float(threat.safeguards_block_by_year[assessment_year])

    if training_cost >= gov_threshold:
        governance_value = 45 * (1 - min(1.0, gov_threshold / training_cost))
    else:
        governance_value = 5

    return [
        InterventionValue(
            name="Model safeguards",
            value=clamp((interventions.safeguard_strength / 100) * capability.dangerous_capability * 30 * blocked, 0, 100),
            active=interventions.safeguard_strength > 10,
        ),
        InterventionValue(
            name="Synthesis screening",
            value=clamp(interventions.screening_coverage * 0.7 + interventions.screening_novel_detect * 0.15, 0, 100),
            active=interventions.screening_coverage > 10,
        ),
        InterventionValue(
            name="Compute governance",
            value=clamp(governance_value, 0, 100),
            active=training_cost >= gov_threshold * 0.5,
        ),
        InterventionValue(
            name="Surveillance",
            value=clamp(interventions.surveillance_eff * 0.6, 0, 100),
            active=interventions.surveillance_eff > 10,
        ),
    ]


def top_intervention(values: List[InterventionValue]) -> InterventionValue:
    """Highest-value intervention; ties go to the one listed first."""
    return max(values, key=lambda v: v.value)


@dataclass(frozen=True)
class ChokepointComparison:
    chokepoints : List[dict]
    lab_setup_to_break_cost_ratio : Optional[float]
    training_to_break_cost_ratio : Optional[float]
    weakest_link : str


def compare_chokepoints(cost_curves: CostCurves) -> ChokepointComparison:
    """Cost of bypassing model safeguards against other chokepoints in the bioweapon development chain."""
    break_cost = cost_curves.break_cost
    training_cost = float(cost_curves.training_costs[0])
    chokepoints = [
        {"name": "Break model safeguards", "cost": break_cost, "note": "current settings", "dynamic": True},
        {"name": "Train model from scratch", "cost": training_cost, "note": "today", "dynamic": True},
    ] + [
        {"name": name, "cost": float(cost), "note": note, "dynamic": False}
        for name, cost, note in OTHER_CHOKEPOINT_COSTS
    ]
    # Model-dependent routes no more expensive than breaking the safeguards
    for chokepoint in chokepoints:
        chokepoint["is_weakest"] = chokepoint["dynamic"] and chokepoint["cost"] <= break_cost
    weakest = min(chokepoints, key=lambda c: c["cost"])
    return ChokepointComparison(
        chokepoints=chokepoints,
        lab_setup_to_break_cost_ratio=LAB_SETUP_COST / break_cost if break_cost > 0 else None,
        training_to_break_cost_ratio=training_cost / break_cost if break_cost > 0 else None,
        weakest_link=weakest["name"],
    )
