"""Parameter Sample Generator

Builds the PSA parameter sample table: one independently sampled column per
uncertain parameter, all sharing the same number of draws.
"""

import numpy as np
import pandas as pd
from typing import List, Optional, Sequence
from dataclasses import dataclass, field
import logging

from utils.exceptions import ConfigurationError
from .distributions import DistributionSampler, Family, parse_family, normalize_parameterization

logger = logging.getLogger(__name__)


@dataclass
class SamplingConfig:
    """Configuration for PSA parameter sampling"""
    n_samples: int = 1000
    seed: Optional[int] = None


@dataclass(frozen=True)
class ParameterDistribution:
    """Distribution specification for one varied parameter"""
    name: str
    family: Family
    parameterization: str
    params: tuple = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError(f"parameter name must be a non-empty string, got {self.name!r}")
        object.__setattr__(self, 'family', parse_family(self.family))
        object.__setattr__(self, 'parameterization', normalize_parameterization(self.parameterization))
        object.__setattr__(self, 'params', tuple(np.atleast_1d(np.asarray(self.params, dtype=object)).tolist()))


def distributions_from_lists(
    names: Sequence[str],
    families: Sequence[str],
    parameterizations: Sequence[str],
    values: Sequence[Sequence[float]],
) -> List[ParameterDistribution]:
    """
    Build distribution records from positionally aligned sequences.

    Raises:
        ConfigurationError: if the sequences differ in length
    """
    lengths = {len(names), len(families), len(parameterizations), len(values)}
    if len(lengths) != 1:
        raise ConfigurationError(
            "names, families, parameterizations and values must have equal length, got "
            f"{len(names)}, {len(families)}, {len(parameterizations)}, {len(values)}"
        )
    return [
        ParameterDistribution(name, family, parameterization, tuple(vals))
        for name, family, parameterization, vals in zip(names, families, parameterizations, values)
    ]


class SampleGenerator:
    """Generates PSA parameter sample tables"""

    def __init__(self, config: SamplingConfig = None, rng: Optional[np.random.Generator] = None):
        self.config = config or SamplingConfig()
        self.sampler = DistributionSampler(random_state=self.config.seed, rng=rng)

    def generate(self, distributions: Sequence[ParameterDistribution], n_samples: Optional[int] = None) -> pd.DataFrame:
        """
        Draw a full parameter sample table.

        Parameters are sampled one at a time in input order from a single
        generator, so a fixed seed reproduces the table exactly.

        Returns:
            DataFrame with one column per parameter, index named 'sample'
        """
        n = self.config.n_samples if n_samples is None else n_samples
        if not distributions:
            raise ConfigurationError("at least one parameter distribution is required")

        names = [d.name for d in distributions]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(f"duplicate parameter names: {duplicates}")

        # Validate every spec before drawing anything
        for dist in distributions:
            self.sampler.native_params(dist.family, dist.parameterization, dist.params)

        columns = {}
        for dist in distributions:
            columns[dist.name] = self.sampler.sample(dist.family, dist.parameterization, dist.params, n)

        df = pd.DataFrame(columns, columns=names)
        df.index.name = 'sample'
        logger.info(f"Generated {n} samples for {len(names)} parameters")
        return df


def generate_psa_samples(
    distributions: Sequence[ParameterDistribution],
    n_samples: int = 1000,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """Convenience wrapper around SampleGenerator.generate"""
    generator = SampleGenerator(SamplingConfig(n_samples=n_samples, seed=seed), rng=rng)
    return generator.generate(distributions)
