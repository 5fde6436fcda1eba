"""Sampling Module

Probability-distribution sampling and PSA parameter sample generation.
"""

from .distributions import (
    DistributionSampler,
    Family,
    UNBOUNDED,
    beta_params,
    gamma_params,
    lnorm_params,
    sample_distribution,
    supported_parameterizations,
)
from .sample_generator import (
    ParameterDistribution,
    SampleGenerator,
    SamplingConfig,
    distributions_from_lists,
    generate_psa_samples,
)

__all__ = [
    'DistributionSampler',
    'Family',
    'UNBOUNDED',
    'beta_params',
    'gamma_params',
    'lnorm_params',
    'sample_distribution',
    'supported_parameterizations',
    'ParameterDistribution',
    'SampleGenerator',
    'SamplingConfig',
    'distributions_from_lists',
    'generate_psa_samples',
]
