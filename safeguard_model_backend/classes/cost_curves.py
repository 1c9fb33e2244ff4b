import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional

from safeguard_model_backend.safeguard_model_parameters import (
    ComputeCostParameters,
    SafeguardRobustnessParameters,
)

# Damping below this value is treated as this value to avoid dividing by zero
MIN_EFFECTIVE_DAMPING = 0.001

# Compute model for converting fine-tuning steps to GPU-hours
BATCH_SIZE = 8
SEQUENCE_LENGTH = 2048
H100_PEAK_FLOP_PER_SECOND = 3e15
SECONDS_PER_HOUR = 3600

# Fine-tuning steps needed to undo known safeguard methods
SAFEGUARD_BENCHMARK_STEPS = {
    "Basic RLHF": 1000,
    "Constitutional AI": 5000,
    "Deep Ignorance (SOTA)": 10000,
}

# (label, start year, end year) for the "physical limits" view of the training decay rate
PHYSICAL_LIMIT_REGIMES = [
    ("Golden era", 0, 5),
    ("Diminishing returns", 5, 10),
    ("Near-plateau", 10, 14),
]


def cost_at_year(base_cost, initial_decay_rate, year, damping, floor):
    """
    Cost of an activity at a given year under a damped exponential decline toward a floor.

    The instantaneous decline rate starts at ln(initial_decay_rate) and itself decays
    at rate `damping`, so the cost falls quickly at first, then plateaus at `floor`:

        cumulative_decline = (k0 / d) * (1 - exp(-d * t))
        cost(t) = floor + (base - floor) * exp(-cumulative_decline)

    Args:
        base_cost: Cost today ($)
        initial_decay_rate: Annual cost-division factor at year 0 (> 1)
        year: Years from now (scalar or numpy array)
        damping: Rate at which the decay rate itself decays (>= 0)
        floor: Irreducible minimum cost ($)

    Returns:
        Cost at `year`; exactly `base_cost` at year 0 and never below `floor`
    """
    k0 = np.log(initial_decay_rate)
    effective_damping = max(damping, MIN_EFFECTIVE_DAMPING)
    year = np.asarray(year, dtype=float)
    cumulative_decline = (k0 / effective_damping) * (1 - np.exp(-effective_damping * year))
    cost = np.maximum(floor, floor + (base_cost - floor) * np.exp(-cumulative_decline))
    # (base - floor) + floor can differ from base by an ulp, so year 0 is pinned to base
    cost = np.where(year == 0, float(base_cost), cost)
    if cost.ndim == 0:
        return float(cost)
    return cost


def instantaneous_rate(initial_decay_rate, year, damping):
    """Annual cost-division multiplier at `year`. Starts at initial_decay_rate and decays toward 1."""
    k0 = np.log(initial_decay_rate)
    effective_damping = max(damping, MIN_EFFECTIVE_DAMPING)
    rate = np.exp(k0 * np.exp(-effective_damping * np.asarray(year, dtype=float)))
    if rate.ndim == 0:
        return float(rate)
    return rate


def naive_cost_at_year(base_cost, decay_rate, year):
    """Undamped exponential decline with no floor, for comparison only."""
    cost = base_cost * np.power(1.0 / decay_rate, np.asarray(year, dtype=float))
    if np.ndim(cost) == 0:
        return float(cost)
    return cost


def seconds_per_step(model_size_b: float, efficiency_factor: float = 15.0) -> float:
    """Wall-clock GPU seconds per fine-tuning step.

    FLOP per step ≈ 6 × params × batch × seq. Real-world training is 10-30x less efficient than
    the theoretical FLOP calculation (memory bandwidth, optimizer state, communication, data loading).
    The default 15x matches the Deep Ignorance calibration (6.9B model, 10K steps, ~8.5-17 GPU-hours).
    """
    flop_per_step = 6 * model_size_b * 1e9 * BATCH_SIZE * SEQUENCE_LENGTH
    theoretical_seconds_per_step = flop_per_step / H100_PEAK_FLOP_PER_SECOND
    return theoretical_seconds_per_step * efficiency_factor


def steps_to_gpu_hours(steps: float, model_size_b: float, efficiency_factor: float = 15.0) -> float:
    return steps * seconds_per_step(model_size_b, efficiency_factor) / SECONDS_PER_HOUR


def gpu_hours_to_cost(gpu_hours, cost_per_gpu_hour):
    return gpu_hours * cost_per_gpu_hour


def steps_to_break_cost(steps: float, model_size_b: float, cost_per_gpu_hour: float, efficiency_factor: float = 15.0) -> float:
    """Dollar cost of running `steps` fine-tuning steps on a `model_size_b` billion parameter model."""
    return gpu_hours_to_cost(steps_to_gpu_hours(steps, model_size_b, efficiency_factor), cost_per_gpu_hour)


def budget_to_steps(budget: float, model_size_b: float, cost_per_gpu_hour: float, efficiency_factor: float = 15.0) -> float:
    """Number of fine-tuning steps that cost exactly `budget`. Inverse of steps_to_break_cost."""
    cost_per_step = cost_per_gpu_hour * seconds_per_step(model_size_b, efficiency_factor) / SECONDS_PER_HOUR
    return budget / cost_per_step


def first_affordable_year(costs, budget: float) -> Optional[int]:
    """Index of the first cost in the trajectory that `budget` covers, or None if never."""
    affordable = np.nonzero(np.asarray(costs) <= budget)[0]
    if len(affordable) == 0:
        return None
    return int(affordable[0])


@dataclass(frozen=True)
class CostCurves:
    years : np.ndarray
    training_costs : np.ndarray
    fine_tune_costs : np.ndarray
    training_costs_naive : np.ndarray
    fine_tune_costs_naive : np.ndarray
    training_rates : np.ndarray
    fine_tune_rates : np.ndarray
    break_gpu_hours : float
    break_cost : float
    break_costs_over_time : np.ndarray
    steps_for_budget_threshold : float
    benchmark_break_costs : Dict[str, float]
    physical_limit_regimes : List[dict]


def break_costs_over_time(break_gpu_hours, years, robustness: SafeguardRobustnessParameters, fine_tune_decay_rate):
    """Break cost at each year as GPU-hours get cheaper.

    GPU prices are assumed to decline more slowly than fine-tuning costs: the GPU-hour price
    decays at `break_cost_decay_fraction` times the fine-tune decay exponent, with a price floor.
    """
    future_gpu_cost = robustness.gpu_hour_cost * np.power(
        1.0 / fine_tune_decay_rate, years * robustness.break_cost_decay_fraction
    )
    return gpu_hours_to_cost(break_gpu_hours, np.maximum(robustness.min_future_gpu_hour_cost, future_gpu_cost))


def compute_cost_curves(costs: ComputeCostParameters, robustness: SafeguardRobustnessParameters, horizon_years: int) -> CostCurves:
    """Training and fine-tune cost trajectories plus the cost of breaking safeguards over the horizon."""
    years = np.arange(horizon_years + 1)

    training_costs = cost_at_year(costs.training_cost_base, costs.training_decay_rate, years, costs.training_damping, costs.training_floor)
    fine_tune_costs = cost_at_year(costs.fine_tune_cost_base, costs.fine_tune_decay_rate, years, costs.fine_tune_damping, costs.fine_tune_floor)
    training_rates = instantaneous_rate(costs.training_decay_rate, years, costs.training_damping)

    break_gpu_hours = steps_to_gpu_hours(robustness.steps_to_break, costs.model_size_b, robustness.efficiency_factor)
    break_cost = gpu_hours_to_cost(break_gpu_hours, robustness.gpu_hour_cost)

    regimes = [
        {
            "label": label,
            "start_year": start,
            "end_year": min(end, horizon_years),
            "start_rate": float(training_rates[min(start, horizon_years)]),
            "end_rate": float(training_rates[min(end, horizon_years)]),
        }
        for label, start, end in PHYSICAL_LIMIT_REGIMES
    ]

    return CostCurves(
        years=years,
        training_costs=training_costs,
        fine_tune_costs=fine_tune_costs,
        training_costs_naive=naive_cost_at_year(costs.training_cost_base, costs.training_decay_rate, years),
        fine_tune_costs_naive=naive_cost_at_year(costs.fine_tune_cost_base, costs.fine_tune_decay_rate, years),
        training_rates=training_rates,
        fine_tune_rates=instantaneous_rate(costs.fine_tune_decay_rate, years, costs.fine_tune_damping),
        break_gpu_hours=break_gpu_hours,
        break_cost=break_cost,
        break_costs_over_time=break_costs_over_time(break_gpu_hours, years, robustness, costs.fine_tune_decay_rate),
        steps_for_budget_threshold=budget_to_steps(
            robustness.safeguard_budget_threshold, costs.model_size_b, robustness.gpu_hour_cost, robustness.efficiency_factor
        ),
        benchmark_break_costs={
            name: steps_to_break_cost(steps, costs.model_size_b, robustness.gpu_hour_cost, robustness.efficiency_factor)
            for name, steps in SAFEGUARD_BENCHMARK_STEPS.items()
        },
        physical_limit_regimes=regimes,
    )
