"""
End-to-end tests for evaluate(): result shapes, determinism, and fail-fast validation.
"""

import json
import math
from dataclasses import replace
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from safeguard_model_backend.classes.decision import assess_relevance
from safeguard_model_backend.format_data_for_safeguard_plots import extract_plot_data, sanitize_for_json
from safeguard_model_backend.safeguard_model import evaluate
from safeguard_model_backend.safeguard_model_parameters import (
    HORIZON_YEARS,
    AttackerProfile,
    SafeguardModelParameters,
    ValidationError,
)
from safeguard_model_backend.util import NumericDegenerateError, ensure_finite


class TestEvaluate:
    def test_trajectories_cover_horizon(self, default_results):
        curves = default_results.cost_curves
        for name in ["years", "training_costs", "fine_tune_costs", "training_rates", "break_costs_over_time"]:
            assert len(getattr(curves, name)) == HORIZON_YEARS + 1, name
        assert default_results.threat.threat_matrix.shape == (len(default_results.params.attackers), HORIZON_YEARS + 1)

    def test_deterministic(self, default_params):
        first = extract_plot_data(evaluate(default_params))
        second = extract_plot_data(evaluate(default_params))
        assert first == second

    def test_concurrent_calls_match_serial(self, default_params):
        param_sets = [
            default_params.update_from_dict({'safeguard_robustness.steps_to_break': steps})
            for steps in [1e3, 1e4, 1e5, 1e6, 1e7]
        ]
        serial = [extract_plot_data(evaluate(p)) for p in param_sets]
        with ThreadPoolExecutor(max_workers=4) as executor:
            concurrent = [extract_plot_data(r) for r in executor.map(evaluate, param_sets)]
        assert serial == concurrent

    def test_params_are_not_mutated(self, default_params):
        before = default_params.to_dict()
        evaluate(default_params)
        assert default_params.to_dict() == before

    def test_relevance_depends_only_on_metrics(self, default_params):
        results = evaluate(default_params)
        assert assess_relevance(results.relevance.metrics) == results.relevance

    def test_arbitrary_attacker_list(self, default_params):
        params = default_params.update_from_dict({
            'attackers': [
                {"name": "Small group", "budget": 50000, "count": 100},
                {"name": "Hobbyist", "budget": 200, "count": 5000},
            ],
        })
        results = evaluate(params)
        assert results.threat.threat_matrix.shape == (2, HORIZON_YEARS + 1)
        assert set(results.threat.first_year_can_train) == {"Small group", "Hobbyist"}

    def test_zero_damping_is_finite(self, default_params):
        params = default_params.update_from_dict({
            'compute_costs.training_damping': 0,
            'compute_costs.fine_tune_damping': 0,
        })
        results = evaluate(params)
        assert np.all(np.isfinite(results.cost_curves.training_costs))
        assert np.all(np.isfinite(results.cost_curves.fine_tune_costs))


class TestValidationErrors:
    """Out-of-domain parameters are rejected before any computation."""

    @pytest.mark.parametrize("overrides", [
        {'compute_costs.training_decay_rate': 1.0},
        {'compute_costs.fine_tune_decay_rate': 0.5},
        {'compute_costs.training_damping': -0.1},
        {'compute_costs.model_size_b': 0},
        {'compute_costs.training_floor_thousands': 30000},
        {'compute_costs.fine_tune_floor_thousands': 1.0},
        {'compute_costs.training_cost_base_millions': float('nan')},
        {'safeguard_robustness.steps_to_break': 0},
        {'safeguard_robustness.gpu_hour_cost': float('inf')},
        {'interventions.screening_coverage': 120},
        {'interventions.surveillance_eff': -5},
        {'decision.assessment_year': 16},
        {'decision.reference_attacker_name': 'Nobody'},
        {'attackers': []},
        {'attackers': [{"name": "Small group", "budget": -1, "count": 100}]},
        {'attackers': [{"name": "Small group", "budget": 50000, "count": -100}]},
        {'attackers': [{"name": "Small group", "budget": 50000}]},
        {'compute_costs.training_cost_base_millions': 1e305},
        {'compute_costs.fine_tune_cost_base_thousands': 1e306},
        {'safeguard_robustness.steps_to_break': 1e308},
        {'compute_costs.model_size_b': 1e300},
        {'safeguard_robustness.min_future_gpu_hour_cost': 1e308},
        {'safeguard_robustness.gpu_hour_cost': 1e-10, 'safeguard_robustness.safeguard_budget_threshold': 1e308},
    ])
    def test_invalid_overrides_rejected(self, default_params, overrides):
        with pytest.raises(ValidationError):
            default_params.update_from_dict(overrides)

    def test_evaluate_validates_directly_constructed_params(self):
        params = SafeguardModelParameters(attackers=(AttackerProfile(name="Small group", budget=0.0, count=1),))
        with pytest.raises(ValidationError):
            evaluate(params)

    def test_overflowing_break_cost_fails_before_computation(self, default_params):
        params = replace(default_params, safeguard_robustness=replace(default_params.safeguard_robustness, steps_to_break=1e308))
        with pytest.raises(ValidationError, match="overflows"):
            evaluate(params)

    def test_validation_error_is_value_error(self):
        assert issubclass(ValidationError, ValueError)


class TestNumericChecks:
    def test_ensure_finite_accepts_finite_values(self):
        ensure_finite("x", {"a": np.arange(3.0), "b": [1.0, 2.0], "c": 3.0})

    @pytest.mark.parametrize("value", [float('nan'), [1.0, float('inf')], {"a": np.array([1.0, np.nan])}])
    def test_ensure_finite_rejects_non_finite(self, value):
        with pytest.raises(NumericDegenerateError):
            ensure_finite("x", value)


class TestPlotData:
    def test_json_serializable(self, default_results):
        data = extract_plot_data(default_results)
        decoded = json.loads(json.dumps(data))
        assert decoded["relevance_level"] == default_results.relevance.level.value
        assert len(decoded["threat_matrix"]) == 4
        assert decoded["attackers"][1]["first_year_can_train"] is None

    def test_sanitize_replaces_non_finite(self):
        data = sanitize_for_json({"a": np.array([1.0, np.inf]), "b": float('nan'), "c": np.int64(3), "d": (np.bool_(True),)})
        assert data == {"a": [1.0, None], "b": None, "c": 3, "d": [True]}
        assert not any(isinstance(v, float) and math.isnan(v) for v in data.values())
