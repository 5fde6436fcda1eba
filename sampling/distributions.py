"""Distribution Sampler

Draws columns of parameter samples from the probability distributions used
in probabilistic sensitivity analysis, and converts moment-style inputs
(mean, sd) into each distribution's native parameters.

Supported (family, parameterization) pairs are held in a fixed lookup
table; anything outside it is a configuration error.
"""

import numpy as np
from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Tuple
from scipy.stats import triang, truncnorm
import logging

from utils.exceptions import ConfigurationError, InvalidParameterization

logger = logging.getLogger(__name__)


class Family(str, Enum):
    """Distribution families available for parameter sampling"""
    NORMAL = 'normal'
    TRUNCATED_NORMAL = 'truncated-normal'
    BETA = 'beta'
    GAMMA = 'gamma'
    LOG_NORMAL = 'log-normal'
    TRIANGULAR = 'triangular'
    UNIFORM = 'uniform'
    CUSTOM = 'custom-arbitrary'


# Labels accepted in addition to the enum values
_FAMILY_ALIASES = {
    'truncnorm': Family.TRUNCATED_NORMAL,
    'lognormal': Family.LOG_NORMAL,
    'triangle': Family.TRIANGULAR,
    'bootstrap': Family.CUSTOM,
    'custom': Family.CUSTOM,
}

# Sentinel for a missing truncation bound
UNBOUNDED = None


def parse_family(label) -> Family:
    """Map a family label onto the Family enum"""
    if isinstance(label, Family):
        return label
    key = str(label).strip().lower()
    if key in _FAMILY_ALIASES:
        return _FAMILY_ALIASES[key]
    try:
        return Family(key)
    except ValueError:
        raise ConfigurationError(f"Unknown distribution family: {label!r}") from None


def normalize_parameterization(label: str) -> str:
    """'Mean, SD' -> 'mean,sd'"""
    return ''.join(str(label).split()).lower()


def beta_params(mean: float, sd: float) -> Tuple[float, float]:
    """
    Method-of-moments shape parameters of a beta distribution.

    Args:
        mean: Target mean, strictly inside (0, 1)
        sd: Target standard deviation (> 0)

    Returns:
        (a, b) shape parameters

    Raises:
        InvalidParameterization: if the implied a or b is not positive
    """
    if not 0 < mean < 1:
        raise InvalidParameterization(f"beta mean must be in (0, 1), got {mean}")
    if sd <= 0:
        raise InvalidParameterization(f"beta sd must be positive, got {sd}")

    common = mean * (1 - mean) / sd ** 2 - 1
    a = mean * common
    b = (1 - mean) * common
    if a <= 0 or b <= 0:
        raise InvalidParameterization(
            f"beta(mean={mean}, sd={sd}) implies non-positive shape parameters "
            f"(a={a:.4g}, b={b:.4g}); variance too large for the mean"
        )
    return a, b


def gamma_params(mean: float, sd: float) -> Tuple[float, float]:
    """
    Method-of-moments (shape, scale) of a gamma distribution.

    shape = mean^2 / sd^2, scale = sd^2 / mean
    """
    if mean <= 0:
        raise InvalidParameterization(f"gamma mean must be positive, got {mean}")
    if sd <= 0:
        raise InvalidParameterization(f"gamma sd must be positive, got {sd}")
    return mean ** 2 / sd ** 2, sd ** 2 / mean


def lnorm_params(mean: float, sd: float) -> Tuple[float, float]:
    """
    (meanlog, sdlog) of a log-normal with the given arithmetic mean and sd.

    Args:
        mean: Expected value on the natural scale (> 0)
        sd: Standard deviation on the natural scale (> 0)
    """
    if mean <= 0:
        raise InvalidParameterization(f"log-normal mean must be positive, got {mean}")
    if sd <= 0:
        raise InvalidParameterization(f"log-normal sd must be positive, got {sd}")
    sdlog = np.sqrt(np.log(1 + sd ** 2 / mean ** 2))
    meanlog = np.log(mean) - sdlog ** 2 / 2
    return float(meanlog), float(sdlog)


def _require_positive_sd(family: Family, sd: float) -> None:
    if sd <= 0:
        raise InvalidParameterization(f"{family.value} sd must be positive, got {sd}")


def _bound(value, default: float) -> float:
    if value is UNBOUNDED:
        return default
    value = float(value)
    if np.isnan(value):
        return default
    return value


# Converters: raw values -> native parameters of the family

def _normal_mean_sd(values):
    mean, sd = values
    _require_positive_sd(Family.NORMAL, sd)
    return {'mean': mean, 'sd': sd}


def _truncnorm_mean_sd_ll_ul(values):
    mean, sd, ll, ul = values
    _require_positive_sd(Family.TRUNCATED_NORMAL, sd)
    ll = _bound(ll, -np.inf)
    ul = _bound(ul, np.inf)
    if ll >= ul:
        raise InvalidParameterization(
            f"truncated-normal lower bound {ll} must be below upper bound {ul}"
        )
    return {'mean': mean, 'sd': sd, 'll': ll, 'ul': ul}


def _beta_a_b(values):
    a, b = values
    if a <= 0 or b <= 0:
        raise InvalidParameterization(f"beta shape parameters must be positive, got a={a}, b={b}")
    return {'a': a, 'b': b}


def _beta_mean_sd(values):
    a, b = beta_params(*values)
    return {'a': a, 'b': b}


def _gamma_shape_scale(values):
    shape, scale = values
    if shape <= 0 or scale <= 0:
        raise InvalidParameterization(
            f"gamma shape and scale must be positive, got shape={shape}, scale={scale}"
        )
    return {'shape': shape, 'scale': scale}


def _gamma_mean_sd(values):
    shape, scale = gamma_params(*values)
    return {'shape': shape, 'scale': scale}


def _lnorm_meanlog_sdlog(values):
    meanlog, sdlog = values
    _require_positive_sd(Family.LOG_NORMAL, sdlog)
    return {'meanlog': meanlog, 'sdlog': sdlog}


def _lnorm_mean_sd(values):
    meanlog, sdlog = lnorm_params(*values)
    return {'meanlog': meanlog, 'sdlog': sdlog}


def _triangular_ll_peak_ul(values):
    ll, peak, ul = values
    if not (ll <= peak <= ul and ll < ul):
        raise InvalidParameterization(
            f"triangular requires ll <= peak <= ul with ll < ul, got ({ll}, {peak}, {ul})"
        )
    return {'ll': ll, 'peak': peak, 'ul': ul}


def _uniform_ll_ul(values):
    ll, ul = values
    if ll >= ul:
        raise InvalidParameterization(f"uniform requires ll < ul, got ({ll}, {ul})")
    return {'ll': ll, 'ul': ul}


def _custom_values(values):
    realizations = np.asarray(values, dtype=float)
    if realizations.size == 0:
        raise ConfigurationError("custom-arbitrary distribution needs at least one realization")
    if not np.all(np.isfinite(realizations)):
        raise InvalidParameterization("custom-arbitrary realizations must be finite")
    return {'values': realizations}


# (family, parameterization) -> (number of values or None for any, converter)
_CONVERTERS: Dict[Tuple[Family, str], Tuple[Optional[int], Callable]] = {
    (Family.NORMAL, 'mean,sd'): (2, _normal_mean_sd),
    (Family.TRUNCATED_NORMAL, 'mean,sd,ll,ul'): (4, _truncnorm_mean_sd_ll_ul),
    (Family.BETA, 'a,b'): (2, _beta_a_b),
    (Family.BETA, 'mean,sd'): (2, _beta_mean_sd),
    (Family.GAMMA, 'shape,scale'): (2, _gamma_shape_scale),
    (Family.GAMMA, 'mean,sd'): (2, _gamma_mean_sd),
    (Family.LOG_NORMAL, 'meanlog,sdlog'): (2, _lnorm_meanlog_sdlog),
    (Family.LOG_NORMAL, 'mean,sd'): (2, _lnorm_mean_sd),
    (Family.TRIANGULAR, 'll,peak,ul'): (3, _triangular_ll_peak_ul),
    (Family.UNIFORM, 'll,ul'): (2, _uniform_ll_ul),
    (Family.CUSTOM, 'values'): (None, _custom_values),
}


def supported_parameterizations(family) -> Tuple[str, ...]:
    """Parameterization labels accepted for a family"""
    family = parse_family(family)
    return tuple(p for f, p in _CONVERTERS if f is family)


def _draw_normal(native, n, rng):
    return rng.normal(native['mean'], native['sd'], size=n)


def _draw_truncnorm(native, n, rng):
    mean, sd = native['mean'], native['sd']
    a = (native['ll'] - mean) / sd
    b = (native['ul'] - mean) / sd
    return truncnorm.rvs(a, b, loc=mean, scale=sd, size=n, random_state=rng)


def _draw_beta(native, n, rng):
    return rng.beta(native['a'], native['b'], size=n)


def _draw_gamma(native, n, rng):
    return rng.gamma(native['shape'], native['scale'], size=n)


def _draw_lnorm(native, n, rng):
    return rng.lognormal(native['meanlog'], native['sdlog'], size=n)


def _draw_triangular(native, n, rng):
    # scipy wants the mode as a fraction of the support: c = (peak - ll) / (ul - ll)
    ll, peak, ul = native['ll'], native['peak'], native['ul']
    c = (peak - ll) / (ul - ll)
    return triang.rvs(c, loc=ll, scale=ul - ll, size=n, random_state=rng)


def _draw_uniform(native, n, rng):
    return rng.uniform(native['ll'], native['ul'], size=n)


def _draw_custom(native, n, rng):
    return rng.choice(native['values'], size=n, replace=True)


_DRAWERS: Dict[Family, Callable] = {
    Family.NORMAL: _draw_normal,
    Family.TRUNCATED_NORMAL: _draw_truncnorm,
    Family.BETA: _draw_beta,
    Family.GAMMA: _draw_gamma,
    Family.LOG_NORMAL: _draw_lnorm,
    Family.TRIANGULAR: _draw_triangular,
    Family.UNIFORM: _draw_uniform,
    Family.CUSTOM: _draw_custom,
}


class DistributionSampler:
    """
    Samples one parameter column from a (family, parameterization) pair.

    Draws come from the numpy Generator handed in (or one seeded with
    `random_state`), so reproducibility is entirely in the caller's hands.
    """

    def __init__(self, random_state: Optional[int] = None, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng(random_state)

    @staticmethod
    def native_params(family, parameterization: str, params: Sequence[float]) -> Dict:
        """
        Convert raw parameter values into the family's native parameters.

        Raises:
            ConfigurationError: unsupported pair or wrong number of values
            InvalidParameterization: non-physical native parameters
        """
        family = parse_family(family)
        # custom-arbitrary resamples the raw vector whatever its label
        if family is Family.CUSTOM:
            return _custom_values(params)

        key = (family, normalize_parameterization(parameterization))
        if key not in _CONVERTERS:
            raise ConfigurationError(
                f"Unsupported parameterization {parameterization!r} for family "
                f"{family.value!r}; expected one of {supported_parameterizations(family)}"
            )
        arity, converter = _CONVERTERS[key]
        values = tuple(np.atleast_1d(np.asarray(params, dtype=object)).tolist())
        if len(values) != arity:
            raise ConfigurationError(
                f"{family.value} '{key[1]}' needs {arity} values, got {len(values)}"
            )
        if family is not Family.TRUNCATED_NORMAL:
            values = tuple(float(v) for v in values)
        else:
            values = (float(values[0]), float(values[1]), values[2], values[3])
        return converter(values)

    def sample(self, family, parameterization: str, params: Sequence[float], n: int) -> np.ndarray:
        """
        Draw n samples.

        Args:
            family: Distribution family (Family or label)
            parameterization: Convention the values follow, e.g. 'mean, sd'
            params: Raw values (or the empirical vector for custom-arbitrary)
            n: Number of draws

        Returns:
            numpy array of length n
        """
        if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 1:
            raise ConfigurationError(f"sample size must be a positive integer, got {n!r}")

        family = parse_family(family)
        native = self.native_params(family, parameterization, params)
        logger.debug(f"Sampling {n} draws from {family.value} with {native}")
        return np.asarray(_DRAWERS[family](native, int(n), self.rng), dtype=float)


def sample_distribution(family, parameterization, params, n, random_state=None):
    """Module-level wrapper for one-off sampling."""
    return DistributionSampler(random_state=random_state).sample(family, parameterization, params, n)
