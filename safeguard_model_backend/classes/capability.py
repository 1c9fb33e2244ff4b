import math
from dataclasses import dataclass

from scipy.special import expit

from safeguard_model_backend.safeguard_model_parameters import CapabilityParameters


def capability_curve(params: float, midpoint: float, steepness: float = 1.5) -> float:
    """
    Probability that a model of size `params` has a capability whose 50% point is at `midpoint`.

    Logistic in log10(params): P = 1 / (1 + exp(-steepness * 5 * (log10(params) - log10(midpoint)))).
    `params` and `midpoint` only need to share units (billions or raw parameter counts).
    """
    x = math.log10(params) - math.log10(midpoint)
    return float(expit(steepness * x * 5))


def safeguard_effectiveness(safeguard_base: float, attacker_budget_ratio: float) -> float:
    """
    Safeguard effectiveness under budget pressure.

    Undiminished while the attacker's budget is at or below the cost it is meant to deter
    (ratio <= 1), then decays exponentially: base * exp(-0.5 * (ratio - 1)).
    """
    return safeguard_base * math.exp(-0.5 * max(0.0, attacker_budget_ratio - 1))


@dataclass(frozen=True)
class CapabilityProfile:
    dangerous_capability : float
    novel_capability : float


def compute_capability_profile(model_size_b: float, capability: CapabilityParameters) -> CapabilityProfile:
    dangerous = capability_curve(model_size_b, capability.dangerous_cap_threshold_b, capability.steepness)
    if capability.novelty_requires_scale:
        novel = capability_curve(
            model_size_b,
            capability.dangerous_cap_threshold_b * capability.novel_midpoint_multiplier,
            capability.steepness,
        )
    else:
        novel = dangerous * capability.novel_fraction_without_scale
    return CapabilityProfile(dangerous_capability=dangerous, novel_capability=novel)
