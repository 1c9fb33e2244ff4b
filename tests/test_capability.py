"""
Tests for capability emergence curves and safeguard effectiveness under budget pressure.
"""

import math

import pytest

from safeguard_model_backend.classes.capability import (
    capability_curve,
    compute_capability_profile,
    safeguard_effectiveness,
)
from safeguard_model_backend.safeguard_model_parameters import CapabilityParameters
from conftest import assert_scalar_close, STRICT_RTOL


class TestCapabilityCurve:
    """Logistic in log10(model size)."""

    @pytest.mark.parametrize("midpoint", [1.0, 10.0, 70.0, 1e3])
    def test_half_at_midpoint(self, midpoint):
        assert_scalar_close(capability_curve(midpoint, midpoint), 0.5, rtol=STRICT_RTOL)

    def test_increasing_in_model_size(self):
        probs = [capability_curve(p, 10.0) for p in [0.1, 1, 5, 10, 20, 100, 1000]]
        assert probs == sorted(probs)
        assert all(0 < p < 1 for p in probs)

    def test_symmetric_in_log_space(self):
        for factor in [1.5, 3, 10]:
            total = capability_curve(10.0 * factor, 10.0) + capability_curve(10.0 / factor, 10.0)
            assert_scalar_close(total, 1.0, rtol=1e-12)

    def test_units_only_need_to_agree(self):
        assert_scalar_close(capability_curve(40, 10), capability_curve(40e9, 10e9), rtol=1e-12)

    def test_steeper_curve_is_sharper(self):
        assert capability_curve(20, 10, steepness=3.0) > capability_curve(20, 10, steepness=1.5)
        assert capability_curve(5, 10, steepness=3.0) < capability_curve(5, 10, steepness=1.5)

    def test_forty_billion_model_is_nearly_certain(self):
        assert capability_curve(40, 10) > 0.98


class TestSafeguardEffectiveness:
    def test_undiminished_at_or_below_ratio_one(self):
        for ratio in [0.0, 0.5, 1.0]:
            assert safeguard_effectiveness(0.7, ratio) == 0.7

    def test_budget_twice_fine_tune_cost(self):
        """Budget $1000 against a $500 fine-tune: effectiveness drops by about 39%."""
        effectiveness = safeguard_effectiveness(0.7, 1000 / 500)
        assert_scalar_close(effectiveness, 0.7 * math.exp(-0.5), rtol=STRICT_RTOL)
        assert abs((1 - effectiveness / 0.7) - 0.39) < 0.01

    def test_decays_toward_zero(self):
        assert safeguard_effectiveness(0.9, 100) < 1e-20


class TestCapabilityProfile:
    def test_novelty_requires_scale_uses_shifted_midpoint(self):
        capability = CapabilityParameters(dangerous_cap_threshold_b=10.0, novelty_requires_scale=True)
        profile = compute_capability_profile(25.0, capability)
        assert_scalar_close(profile.novel_capability, 0.5, rtol=STRICT_RTOL)
        assert profile.dangerous_capability > profile.novel_capability

    def test_novelty_without_scale_is_fraction_of_dangerous(self):
        capability = CapabilityParameters(novelty_requires_scale=False)
        profile = compute_capability_profile(40.0, capability)
        assert_scalar_close(profile.novel_capability, 0.7 * profile.dangerous_capability, rtol=STRICT_RTOL)
