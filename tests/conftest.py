"""
Shared pytest fixtures for safeguard model tests.
"""

import pytest
import numpy as np
from pathlib import Path

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from safeguard_model_backend.safeguard_model import evaluate
from safeguard_model_backend.safeguard_model_parameters import SafeguardModelParameters

# Standard tolerance levels for assertions
STRICT_RTOL = 1e-12   # For closed-form values computed two ways
NORMAL_RTOL = 1e-9    # For round trips through several operations

CONFIG_DIR = Path(__file__).parent.parent / 'config'


@pytest.fixture
def default_params():
    """SafeguardModelParameters with dataclass defaults."""
    return SafeguardModelParameters()


@pytest.fixture
def default_results(default_params):
    """Model results for the default parameters."""
    return evaluate(default_params)


def assert_arrays_close(actual, expected, rtol=NORMAL_RTOL, atol=0, msg=""):
    """Assert two arrays are close within tolerance."""
    actual = np.asarray(actual)
    expected = np.asarray(expected)

    try:
        np.testing.assert_allclose(actual, expected, rtol=rtol, atol=atol)
    except AssertionError as e:
        if msg:
            raise AssertionError(f"{msg}\n{e}") from None
        raise


def assert_scalar_close(actual, expected, rtol=NORMAL_RTOL, atol=0, msg=""):
    """Assert two scalars are close within tolerance."""
    if not np.isclose(actual, expected, rtol=rtol, atol=atol):
        raise AssertionError(
            f"{msg}: expected {expected}, got {actual}, "
            f"diff={abs(actual - expected)}, rel_diff={abs(actual - expected) / max(abs(expected), 1e-10)}"
        )
