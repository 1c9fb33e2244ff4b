from dataclasses import dataclass, field, fields, replace
from typing import Optional, Tuple
import logging
import math

import yaml

logger = logging.getLogger(__name__)

# Number of years after "now" covered by every trajectory (year 0 .. HORIZON_YEARS)
HORIZON_YEARS = 15


class ValidationError(ValueError):
    """A parameter is outside its documented domain."""


def _require_finite(name, value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number (got {value!r})")
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite (got {value})")


def _require_positive(name, value):
    _require_finite(name, value)
    if value <= 0:
        raise ValidationError(f"{name} must be positive (got {value})")


def _require_non_negative(name, value):
    _require_finite(name, value)
    if value < 0:
        raise ValidationError(f"{name} must be non-negative (got {value})")


def _require_percentage(name, value):
    _require_finite(name, value)
    if value < 0 or value > 100:
        raise ValidationError(f"{name} must be between 0 and 100 (got {value})")


@dataclass(frozen=True)
class ComputeCostParameters:
    # Training / fine-tuning cost curves. Slider units: training in $M, fine-tune and floors in $K.
    model_size_b : float = 40.0  # Biological foundation model size (Evo2 ≈ 40B)
    training_cost_base_millions : float = 20.0
    fine_tune_cost_base_thousands : float = 0.5
    training_decay_rate : float = 2.5  # Initial annual cost-division factor
    fine_tune_decay_rate : float = 4.0
    training_damping : float = 0.15
    fine_tune_damping : float = 0.12
    training_floor_thousands : float = 50.0
    fine_tune_floor_thousands : float = 0.01

    @property
    def training_cost_base(self) -> float:
        return self.training_cost_base_millions * 1e6

    @property
    def fine_tune_cost_base(self) -> float:
        return self.fine_tune_cost_base_thousands * 1e3

    @property
    def training_floor(self) -> float:
        return self.training_floor_thousands * 1e3

    @property
    def fine_tune_floor(self) -> float:
        return self.fine_tune_floor_thousands * 1e3

    def validate(self):
        """Validate cost curve parameters."""
        _require_positive("model_size_b", self.model_size_b)
        _require_positive("training_cost_base_millions", self.training_cost_base_millions)
        _require_positive("fine_tune_cost_base_thousands", self.fine_tune_cost_base_thousands)
        for name in ("training_decay_rate", "fine_tune_decay_rate"):
            value = getattr(self, name)
            _require_finite(name, value)
            if value <= 1:
                raise ValidationError(f"{name} must be greater than 1 (got {value})")
        _require_non_negative("training_damping", self.training_damping)
        _require_non_negative("fine_tune_damping", self.fine_tune_damping)
        _require_non_negative("training_floor_thousands", self.training_floor_thousands)
        _require_non_negative("fine_tune_floor_thousands", self.fine_tune_floor_thousands)
        # Slider units are converted to dollars; the converted values must still be representable
        for name in ("training_cost_base", "fine_tune_cost_base", "training_floor", "fine_tune_floor"):
            _require_finite(name, getattr(self, name))
        if self.training_floor > self.training_cost_base:
            raise ValidationError(
                f"Training floor (${self.training_floor:,.0f}) must not exceed training cost base (${self.training_cost_base:,.0f})"
            )
        if self.fine_tune_floor > self.fine_tune_cost_base:
            raise ValidationError(
                f"Fine-tune floor (${self.fine_tune_floor:,.2f}) must not exceed fine-tune cost base (${self.fine_tune_cost_base:,.2f})"
            )


@dataclass(frozen=True)
class CapabilityParameters:
    dangerous_cap_threshold_b : float = 10.0  # Params (B) at which P(dangerous capability) crosses 50%
    novelty_requires_scale : bool = True
    steepness : float = 1.5
    novel_midpoint_multiplier : float = 2.5  # Novel capability midpoint relative to dangerous threshold
    novel_fraction_without_scale : float = 0.7  # Used when novelty is not scale-gated

    def validate(self):
        """Validate capability curve parameters."""
        _require_positive("dangerous_cap_threshold_b", self.dangerous_cap_threshold_b)
        if not isinstance(self.novelty_requires_scale, bool):
            raise ValidationError(f"novelty_requires_scale must be a boolean (got {self.novelty_requires_scale!r})")
        _require_positive("steepness", self.steepness)
        _require_positive("novel_midpoint_multiplier", self.novel_midpoint_multiplier)
        _require_finite("novel_fraction_without_scale", self.novel_fraction_without_scale)
        if not 0 <= self.novel_fraction_without_scale <= 1:
            raise ValidationError(
                f"novel_fraction_without_scale must be between 0 and 1 (got {self.novel_fraction_without_scale})"
            )


@dataclass(frozen=True)
class AttackerProfile:
    name : str
    budget : float
    count : float
    color_tag : str = ""

    def validate(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValidationError(f"Attacker profile name must be a non-empty string (got {self.name!r})")
        _require_positive(f"budget of attacker '{self.name}'", self.budget)
        _require_non_negative(f"count of attacker '{self.name}'", self.count)

    @classmethod
    def from_dict(cls, data: dict) -> "AttackerProfile":
        try:
            return cls(
                name=data["name"],
                budget=_coerce(data["budget"], 0.0),
                count=_coerce(data["count"], 0.0),
                color_tag=data.get("color_tag", ""),
            )
        except (KeyError, TypeError) as e:
            raise ValidationError(f"Malformed attacker profile {data!r}: {e}") from None


def default_attacker_profiles() -> Tuple[AttackerProfile, ...]:
    return (
        AttackerProfile(name="Lone actor", budget=1000.0, count=10000, color_tag="#6ECFB0"),
        AttackerProfile(name="Small group", budget=50000.0, count=100, color_tag="#F2C46D"),
        AttackerProfile(name="Well-funded org", budget=2e6, count=20, color_tag="#E88B6E"),
        AttackerProfile(name="State actor", budget=5e8, count=15, color_tag="#D45D79"),
    )


@dataclass(frozen=True)
class SafeguardRobustnessParameters:
    steps_to_break : float = 10000.0  # Basic RLHF: ~1K. Deep Ignorance (SOTA): ~10K.
    gpu_hour_cost : float = 2.0  # Current H100 spot pricing ($/hr)
    safeguard_budget_threshold : float = 1000.0  # Budget ($) safeguards should cost an attacker to break
    efficiency_factor : float = 15.0  # Real training is this many times slower than peak FLOP throughput

    # Break cost declines as GPU-hours get cheaper. This is a modeling choice, not a physical law:
    # GPU price decays at break_cost_decay_fraction × the fine-tune decay exponent.
    break_cost_decay_fraction : float = 0.5
    min_future_gpu_hour_cost : float = 0.1

    def validate(self):
        """Validate safeguard robustness parameters."""
        _require_positive("steps_to_break", self.steps_to_break)
        _require_positive("gpu_hour_cost", self.gpu_hour_cost)
        _require_positive("safeguard_budget_threshold", self.safeguard_budget_threshold)
        _require_positive("efficiency_factor", self.efficiency_factor)
        _require_non_negative("break_cost_decay_fraction", self.break_cost_decay_fraction)
        _require_non_negative("min_future_gpu_hour_cost", self.min_future_gpu_hour_cost)


@dataclass(frozen=True)
class InterventionParameters:
    safeguard_strength : float = 70.0  # Resistance to fine-tuning attacks (%)
    screening_coverage : float = 40.0  # Synthesis screening provider coverage (%)
    screening_novel_detect : float = 30.0  # Catch rate for AI-designed sequences (%)
    surveillance_eff : float = 50.0  # Metagenomic surveillance effectiveness (%)
    compute_gov_threshold_millions : float = 1.0

    @property
    def compute_gov_threshold(self) -> float:
        return self.compute_gov_threshold_millions * 1e6

    def validate(self):
        """Validate intervention parameters."""
        for name in ("safeguard_strength", "screening_coverage", "screening_novel_detect", "surveillance_eff"):
            _require_percentage(name, getattr(self, name))
        _require_non_negative("compute_gov_threshold_millions", self.compute_gov_threshold_millions)


@dataclass(frozen=True)
class DecisionParameters:
    assessment_year : int = 5  # Year at which blocked fraction and intervention value are read off
    reference_attacker_name : str = "Small group"  # Attacker class whose budget anchors the window and break-cost ratio

    def validate(self):
        if isinstance(self.assessment_year, bool) or not isinstance(self.assessment_year, int):
            raise ValidationError(f"assessment_year must be an integer (got {self.assessment_year!r})")
        if not 0 <= self.assessment_year <= HORIZON_YEARS:
            raise ValidationError(
                f"assessment_year must be between 0 and {HORIZON_YEARS} (got {self.assessment_year})"
            )


def _coerce(value, current):
    """Coerce an incoming value (possibly a query-string) to the type of the current field value."""
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes", "on")
        return bool(value)
    if isinstance(current, int) and not isinstance(value, bool):
        try:
            as_float = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Expected an integer, got {value!r}") from None
        if as_float.is_integer():
            return int(as_float)
        raise ValidationError(f"Expected an integer, got {value!r}")
    if isinstance(current, float) and not isinstance(value, bool):
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Expected a number, got {value!r}") from None
    return value


def _replace_nested_attr(obj, path, value):
    """Return a copy of a frozen dataclass with a nested attribute set using dot notation: 'a.b.c'"""
    head, _, rest = path.partition('.')
    if head not in getattr(obj, '__dataclass_fields__', {}):
        raise AttributeError(f"{type(obj).__name__} has no parameter {head}")
    current = getattr(obj, head)
    if rest:
        return replace(obj, **{head: _replace_nested_attr(current, rest, value)})
    if hasattr(current, '__dataclass_fields__'):
        raise AttributeError(f"{path} is a parameter group, not a parameter")
    return replace(obj, **{head: _coerce(value, current)})


@dataclass(frozen=True)
class SafeguardModelParameters:
    compute_costs : ComputeCostParameters = field(default_factory=ComputeCostParameters)
    capability : CapabilityParameters = field(default_factory=CapabilityParameters)
    attackers : Tuple[AttackerProfile, ...] = field(default_factory=default_attacker_profiles)
    safeguard_robustness : SafeguardRobustnessParameters = field(default_factory=SafeguardRobustnessParameters)
    interventions : InterventionParameters = field(default_factory=InterventionParameters)
    decision : DecisionParameters = field(default_factory=DecisionParameters)

    def validate(self):
        """Validate every parameter group. Raises ValidationError on the first out-of-domain value."""
        self.compute_costs.validate()
        self.capability.validate()
        self.safeguard_robustness.validate()
        self.interventions.validate()
        self.decision.validate()

        if not isinstance(self.attackers, tuple) or len(self.attackers) == 0:
            raise ValidationError("At least one attacker profile is required")
        for attacker in self.attackers:
            if not isinstance(attacker, AttackerProfile):
                raise ValidationError(f"Expected an AttackerProfile, got {attacker!r}")
            attacker.validate()
        if self.reference_attacker() is None:
            raise ValidationError(
                f"Reference attacker '{self.decision.reference_attacker_name}' is not among the attacker profiles"
            )
        self._validate_break_cost()

    def _validate_break_cost(self):
        """Check that the cost of breaking safeguards, a product across parameter groups, stays finite."""
        from safeguard_model_backend.classes.cost_curves import steps_to_break_cost

        robustness = self.safeguard_robustness
        model_size_b = self.compute_costs.model_size_b
        cost_per_step = steps_to_break_cost(1, model_size_b, robustness.gpu_hour_cost, robustness.efficiency_factor)
        if not math.isfinite(cost_per_step) or cost_per_step <= 0:
            raise ValidationError(f"Cost per fine-tuning step must be positive and finite (got {cost_per_step})")
        # Break cost at the highest GPU-hour price it can take over the horizon
        highest_gpu_hour_cost = max(robustness.gpu_hour_cost, robustness.min_future_gpu_hour_cost)
        worst_break_cost = steps_to_break_cost(
            robustness.steps_to_break, model_size_b, highest_gpu_hour_cost, robustness.efficiency_factor
        )
        if not math.isfinite(worst_break_cost):
            raise ValidationError(
                f"Cost of breaking safeguards overflows (steps_to_break={robustness.steps_to_break}, "
                f"model_size_b={model_size_b}, gpu_hour_cost={robustness.gpu_hour_cost})"
            )
        if not math.isfinite(robustness.safeguard_budget_threshold / cost_per_step):
            raise ValidationError(
                f"safeguard_budget_threshold of {robustness.safeguard_budget_threshold} is too large for a cost "
                f"per step of {cost_per_step}"
            )

    def require_parameter(self, path: str):
        """Raise ValidationError unless `path` names a single parameter (or the attacker list)."""
        if path == 'attackers':
            return
        obj = self
        for part in path.split('.'):
            if part not in getattr(obj, '__dataclass_fields__', {}):
                raise ValidationError(f"Unknown parameter {path}")
            obj = getattr(obj, part)
        if hasattr(obj, '__dataclass_fields__'):
            raise ValidationError(f"{path} is a parameter group, not a parameter")

    def reference_attacker(self) -> Optional[AttackerProfile]:
        for attacker in self.attackers:
            if attacker.name == self.decision.reference_attacker_name:
                return attacker
        return None

    def update_from_dict(self, data: dict) -> "SafeguardModelParameters":
        """
        Return a copy of these parameters with overrides from request data applied.
        Field names with dots (e.g., 'compute_costs.training_decay_rate') are converted to nested
        attribute access. The attacker list is replaced wholesale from data['attackers'].
        Unknown fields are skipped. The returned parameters are validated.
        """
        updated = self
        for field_name, value in data.items():
            if field_name == 'attackers':
                if not isinstance(value, (list, tuple)):
                    raise ValidationError(f"attackers must be a list (got {value!r})")
                attackers = tuple(
                    a if isinstance(a, AttackerProfile) else AttackerProfile.from_dict(a)
                    for a in value
                )
                updated = replace(updated, attackers=attackers)
                continue

            try:
                updated = _replace_nested_attr(updated, field_name, value)
            except AttributeError:
                # Field doesn't exist in SafeguardModelParameters - skip it (e.g., UI-only state)
                logger.debug("Ignoring unknown parameter %s", field_name)

        updated.validate()
        return updated

    def to_dict(self):
        """
        Convert parameters to a dictionary using dot notation for nested fields.
        Attacker profiles are emitted as a list of dicts under 'attackers'.
        """
        def flatten_dataclass(obj, prefix=''):
            result = {}
            for f in fields(obj):
                field_value = getattr(obj, f.name)
                full_key = f"{prefix}.{f.name}" if prefix else f.name

                if hasattr(field_value, '__dataclass_fields__'):
                    result.update(flatten_dataclass(field_value, full_key))
                elif f.name == 'attackers':
                    result[full_key] = [
                        {"name": a.name, "budget": a.budget, "count": a.count, "color_tag": a.color_tag}
                        for a in field_value
                    ]
                else:
                    result[full_key] = field_value
            return result

        return flatten_dataclass(self)


def load_parameters_from_yaml(path: str) -> SafeguardModelParameters:
    """Load parameter overrides from a YAML file.

    The file may use nested mappings (compute_costs: {training_decay_rate: 3.0}) or dotted keys;
    both are flattened to dot notation before being applied over the defaults.
    """
    with open(path, 'r', encoding='utf-8') as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValidationError(f"Expected a mapping at the top level of {path}")

    def flatten(mapping, prefix=''):
        flat = {}
        for key, value in mapping.items():
            full_key = f"{prefix}.{key}" if prefix else str(key)
            if isinstance(value, dict):
                flat.update(flatten(value, full_key))
            else:
                flat[full_key] = value
        return flat

    logger.info("Loading parameter overrides from %s", path)
    return SafeguardModelParameters().update_from_dict(flatten(raw))
