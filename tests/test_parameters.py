"""
Tests for parameter defaults, dot-notation overrides, and YAML loading.
"""

import pytest

from safeguard_model_backend.safeguard_model_parameters import (
    AttackerProfile,
    SafeguardModelParameters,
    ValidationError,
    load_parameters_from_yaml,
)
from conftest import CONFIG_DIR


class TestDefaults:
    def test_defaults_are_valid(self, default_params):
        default_params.validate()

    def test_unit_conversions(self, default_params):
        costs = default_params.compute_costs
        assert costs.training_cost_base == 20e6
        assert costs.fine_tune_cost_base == 500.0
        assert costs.training_floor == 50e3
        assert costs.fine_tune_floor == 10.0
        assert default_params.interventions.compute_gov_threshold == 1e6

    def test_default_attackers(self, default_params):
        names = [a.name for a in default_params.attackers]
        assert names == ["Lone actor", "Small group", "Well-funded org", "State actor"]
        assert default_params.reference_attacker().budget == 50000


class TestUpdateFromDict:
    def test_returns_new_instance(self, default_params):
        updated = default_params.update_from_dict({'compute_costs.training_decay_rate': 3.0})
        assert updated.compute_costs.training_decay_rate == 3.0
        assert default_params.compute_costs.training_decay_rate == 2.5
        assert updated.capability is default_params.capability

    def test_coerces_strings(self, default_params):
        updated = default_params.update_from_dict({
            'safeguard_robustness.gpu_hour_cost': '3.5',
            'capability.novelty_requires_scale': 'false',
            'decision.assessment_year': '7',
        })
        assert updated.safeguard_robustness.gpu_hour_cost == 3.5
        assert updated.capability.novelty_requires_scale is False
        assert updated.decision.assessment_year == 7

    def test_integer_field_rejects_fraction(self, default_params):
        with pytest.raises(ValidationError):
            default_params.update_from_dict({'decision.assessment_year': 2.5})

    def test_number_field_rejects_text(self, default_params):
        with pytest.raises(ValidationError):
            default_params.update_from_dict({'compute_costs.model_size_b': 'large'})

    def test_unknown_keys_ignored(self, default_params):
        updated = default_params.update_from_dict({
            'not_a_group.value': 1,
            'compute_costs.not_a_field': 2,
            'compute_costs.training_cost_base': 5,
            'compute_costs': 3,
        })
        assert updated == default_params

    def test_attackers_replaced_wholesale(self, default_params):
        updated = default_params.update_from_dict({
            'attackers': [
                {"name": "Small group", "budget": "75000", "count": 50},
                AttackerProfile(name="Insider", budget=1e5, count=3),
            ],
        })
        assert [a.name for a in updated.attackers] == ["Small group", "Insider"]
        assert updated.reference_attacker().budget == 75000.0

    def test_to_dict_round_trip(self, default_params):
        flat = default_params.to_dict()
        assert flat['compute_costs.training_decay_rate'] == 2.5
        assert flat['decision.reference_attacker_name'] == "Small group"
        assert flat['attackers'][0]['name'] == "Lone actor"
        assert SafeguardModelParameters().update_from_dict(flat) == default_params


class TestYamlLoading:
    def test_shipped_defaults_match_dataclass_defaults(self, default_params):
        assert load_parameters_from_yaml(CONFIG_DIR / 'default_parameters.yaml') == default_params

    def test_nested_and_dotted_keys(self, tmp_path):
        path = tmp_path / 'params.yaml'
        path.write_text(
            "compute_costs:\n"
            "  model_size_b: 6.9\n"
            "safeguard_robustness.steps_to_break: 1000\n"
            "decision:\n"
            "  reference_attacker_name: Lone actor\n"
        )
        params = load_parameters_from_yaml(path)
        assert params.compute_costs.model_size_b == 6.9
        assert params.safeguard_robustness.steps_to_break == 1000.0
        assert params.reference_attacker().name == "Lone actor"

    def test_empty_file_gives_defaults(self, tmp_path, default_params):
        path = tmp_path / 'empty.yaml'
        path.write_text("")
        assert load_parameters_from_yaml(path) == default_params

    def test_invalid_values_rejected(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("compute_costs:\n  training_decay_rate: 0.9\n")
        with pytest.raises(ValidationError):
            load_parameters_from_yaml(path)
