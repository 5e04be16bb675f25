"""Environment validation for loglinear-grammar dependencies."""

import sys
import warnings
from importlib import metadata
from typing import Dict, Optional

from packaging import version

# distribution name -> what it is needed for
REQUIRED = {
    'numpy': "array operations",
    'scipy': "L-BFGS and the unary closure",
}
OPTIONAL = {
    'tomli-w': "writing TOML settings",
}
REPORTED = ('numpy', 'scipy', 'packaging', 'tomli-w')


def installed_version(distribution: str) -> Optional[str]:
    """Installed version of ``distribution`` or None if it is missing."""
    try:
        return metadata.version(distribution)
    except metadata.PackageNotFoundError:
        return None


def check_environment(min_numpy: str = "1.25", min_scipy: str = "1.11") -> None:
    """Check that the environment meets minimum dependency requirements.

    Parameters
    ----------
    min_numpy : str, default="1.25"
        Minimum required NumPy version
    min_scipy : str, default="1.11"
        Minimum required SciPy version

    Raises
    ------
    RuntimeError
        If any required dependency is missing or too old

    Examples
    --------
    >>> check_environment(min_numpy="1.24", min_scipy="1.10")
    """
    minimums = {'numpy': min_numpy, 'scipy': min_scipy}
    errors = []

    if sys.version_info < (3, 11):
        errors.append(f"Python 3.11+ required, found {sys.version_info.major}.{sys.version_info.minor}")

    for name, purpose in REQUIRED.items():
        found = installed_version(name)
        if found is None:
            errors.append(f"{name} not installed - required for {purpose}")
        elif version.parse(found) < version.parse(minimums[name]):
            errors.append(f"{name} {minimums[name]}+ required, found {found}")

    missing_optional = [f"{name} not installed - needed for {purpose}"
                        for name, purpose in OPTIONAL.items() if installed_version(name) is None]

    if errors:
        raise RuntimeError("Environment validation failed:\n"
                           + "\n".join(f"  - {err}" for err in errors)
                           + "\n\nTo install required dependencies:\n  pip install numpy scipy tomli-w packaging")

    if missing_optional:
        warnings.warn("Environment warnings:\n" + "\n".join(f"  - {w}" for w in missing_optional), UserWarning)


def get_dependency_versions() -> Dict[str, str]:
    """Python and dependency versions, ``'not installed'`` for missing packages."""
    versions = {
        'python': f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    }
    for name in REPORTED:
        versions[name] = installed_version(name) or 'not installed'
    return versions


def validate_numerical_stability() -> None:
    """Check that log-space arithmetic behaves as the trainer assumes.

    Raises
    ------
    RuntimeError
        If log-sum-exp produces NaN for empty input, overflows for large
        inputs, or NumPy does not report exp overflow as inf
    """
    import numpy as np
    from ..core.numerics import log_sum, log_normalize

    if log_sum([]) != float("-inf") or log_sum([-np.inf, -np.inf]) != float("-inf"):
        raise RuntimeError("Log-sum of empty input is not -inf")

    if not np.isclose(log_sum([1000.0, 1000.0]), 1000.0 + np.log(2.0)):
        raise RuntimeError("Log-sum overflows for large inputs")

    if np.isnan(log_normalize(np.full(3, -np.inf))).any():
        raise RuntimeError("Normalizing an impossible context produced NaN")

    with np.errstate(over='ignore'):
        if np.isfinite(np.exp(1000.0)):
            raise RuntimeError("NumPy exp overflow is not reported as inf")
