import math
import numpy as np


class NumericDegenerateError(ArithmeticError):
    """A computation produced NaN or infinity despite the epsilon guards."""


def clamp(value, lo, hi):
    return max(lo, min(hi, value))


def ensure_finite(name, value):
    """
    Raise NumericDegenerateError if `value` (a scalar, numpy array, or nested list/dict of them)
    contains NaN or infinity.
    """
    if isinstance(value, dict):
        for key, item in value.items():
            ensure_finite(f"{name}.{key}", item)
        return
    if isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            ensure_finite(f"{name}[{i}]", item)
        return
    if isinstance(value, np.ndarray):
        if value.dtype.kind in "fc" and not np.all(np.isfinite(value)):
            raise NumericDegenerateError(f"{name} contains non-finite values")
        return
    if isinstance(value, float) and not math.isfinite(value):
        raise NumericDegenerateError(f"{name} is not finite ({value})")
