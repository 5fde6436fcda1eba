"""Sensitivity Analysis Orchestrator

Main entry point that runs probabilistic (PSA) or deterministic one-way /
two-way (DSA) sensitivity analysis of a decision model described in a JSON
analysis file, and writes the resulting tables as CSV.
"""

import numpy as np
import pandas as pd
import logging
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field
from pathlib import Path
import argparse
import importlib
import json

from sampling import ParameterDistribution, SamplingConfig, SampleGenerator
from evaluation import (
    DSAConfig,
    ParameterRange,
    run_psa,
    run_owsa_det,
    run_twsa_det,
    owsa_opt_strat,
    twsa_opt_strat,
)
from analysis import calc_exp_loss, ceac, summarize_ceac, calc_evpi
from models.markov_cohort import MarkovConfig
from utils.exceptions import ConfigurationError, SensitivityAnalysisError

logger = logging.getLogger(__name__)

DEMO_MODEL = 'models.markov_cohort:run_markov'


@dataclass
class AnalysisConfig:
    """Configuration for one sensitivity analysis run"""
    model: str = DEMO_MODEL
    model_args: Dict[str, Any] = field(default_factory=dict)
    params_basecase: Dict[str, float] = field(default_factory=dict)
    distributions: List[ParameterDistribution] = field(default_factory=list)
    ranges: List[ParameterRange] = field(default_factory=list)
    wtp: List[float] = field(default_factory=lambda: list(np.arange(0, 100001, 5000, dtype=float)))
    cost_outcome: str = 'Cost'
    effect_outcome: str = 'QALY'
    currency: str = '$'
    effect_units: str = 'QALY'
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    dsa: DSAConfig = field(default_factory=DSAConfig)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'AnalysisConfig':
        """Build a configuration from parsed JSON."""
        wtp = raw.get('wtp')
        if isinstance(wtp, dict):
            try:
                wtp = list(np.arange(wtp['min'], wtp['max'] + wtp['step'] / 2, wtp['step'], dtype=float))
            except KeyError as exc:
                raise ConfigurationError(f"wtp grid needs min, max and step; missing {exc}") from None
        outcomes = raw.get('outcomes', {})
        try:
            distributions = [
                ParameterDistribution(d['name'], d['family'], d['parameterization'], tuple(d['params']))
                for d in raw.get('distributions', [])
            ]
            ranges = [ParameterRange(r['name'], r['min'], r['max']) for r in raw.get('ranges', [])]
        except KeyError as exc:
            raise ConfigurationError(f"analysis file entry missing key {exc}") from None

        config = cls(
            model=raw.get('model', DEMO_MODEL),
            model_args=dict(raw.get('model_args', {})),
            params_basecase=dict(raw.get('params_basecase', {})),
            distributions=distributions,
            ranges=ranges,
            cost_outcome=outcomes.get('cost', 'Cost'),
            effect_outcome=outcomes.get('effect', 'QALY'),
            currency=raw.get('currency', '$'),
            effect_units=raw.get('effect_units', 'QALY'),
            sampling=SamplingConfig(**raw.get('sampling', {})),
            dsa=DSAConfig(**raw.get('dsa', {})),
        )
        if wtp is not None:
            config.wtp = [float(w) for w in wtp]
        return config


def load_analysis_config(path: str) -> AnalysisConfig:
    with open(path) as f:
        return AnalysisConfig.from_dict(json.load(f))


def demo_config() -> AnalysisConfig:
    """Markov cohort demo: PSA over five parameters, DSA over two."""
    return AnalysisConfig(
        params_basecase=MarkovConfig().to_params(),
        distributions=[
            ParameterDistribution('p_HS', 'beta', 'mean, sd', (0.05, 0.01)),
            ParameterDistribution('p_SD', 'beta', 'a, b', (10, 90)),
            ParameterDistribution('rr_A', 'log-normal', 'mean, sd', (0.70, 0.10)),
            ParameterDistribution('rr_B', 'log-normal', 'mean, sd', (0.55, 0.10)),
            ParameterDistribution('c_S', 'gamma', 'mean, sd', (4000, 800)),
            ParameterDistribution('u_S', 'truncated-normal', 'mean, sd, ll, ul', (0.60, 0.10, 0.0, 1.0)),
        ],
        ranges=[
            ParameterRange('p_HS', 0.02, 0.10),
            ParameterRange('c_B', 800, 2000),
        ],
        sampling=SamplingConfig(n_samples=500, seed=2024),
        dsa=DSAConfig(nsamp=25),
    )


def resolve_model(reference: str) -> Callable:
    """'package.module:function' -> callable"""
    module_name, sep, attr = reference.partition(':')
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"model reference must look like 'module:function', got {reference!r}")
    module = importlib.import_module(module_name)
    model_fn = getattr(module, attr, None)
    if not callable(model_fn):
        raise ConfigurationError(f"{module_name} has no callable {attr!r}")
    return model_fn


class SensitivityPipeline:
    """Runs PSA or DSA for one analysis configuration and writes the tables"""

    def __init__(self, config: AnalysisConfig, output_dir: str = './outputs', progress: bool = False):
        self.config = config
        self.output_dir = Path(output_dir)
        self.progress = progress
        self.model_fn = resolve_model(config.model)
        logger.info(f"Initialized pipeline for model {config.model}")

    def _write(self, df: pd.DataFrame, name: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{name}.csv"
        df.to_csv(path, index=False)
        logger.info(f"Wrote {path}")
        return path

    def run_psa(self) -> Dict[str, Any]:
        cfg = self.config
        if not cfg.distributions:
            raise ConfigurationError("PSA needs at least one parameter distribution")

        samples = SampleGenerator(cfg.sampling).generate(cfg.distributions)
        run = run_psa(
            self.model_fn,
            samples,
            cfg.params_basecase,
            outcomes=[cfg.cost_outcome, cfg.effect_outcome],
            fixed_args=cfg.model_args,
            progress=self.progress,
        )
        psa = run.to_psa(cost=cfg.cost_outcome, effect=cfg.effect_outcome,
                         currency=cfg.currency, effect_units=cfg.effect_units)

        icers = psa.calculate_icers()
        ceac_df = ceac(psa, cfg.wtp)
        evpi = calc_evpi(psa, cfg.wtp)

        self._write(run.parameters, 'psa_parameters')
        self._write(run.results, 'psa_results')
        self._write(psa.summary(calc_sds=True), 'psa_summary')
        self._write(icers, 'icers')
        self._write(calc_exp_loss(psa, cfg.wtp), 'exp_loss')
        self._write(ceac_df, 'ceac')
        self._write(summarize_ceac(ceac_df), 'ceac_summary')
        self._write(evpi, 'evpi')

        return {
            'mode': 'psa',
            'n_samples': psa.n_sim,
            'strategies': list(psa.strategies),
            'frontier': psa.frontier(),
            'max_evpi': float(evpi['EVPI'].max()),
        }

    def run_owsa(self) -> Dict[str, Any]:
        cfg = self.config
        results = run_owsa_det(
            self.model_fn, cfg.ranges, cfg.params_basecase, nsamp=cfg.dsa.nsamp,
            fixed_args=cfg.model_args, progress=self.progress,
        )
        for outcome, df in results.items():
            self._write(df, f"owsa_{outcome}")
            maximize = outcome != cfg.cost_outcome
            self._write(owsa_opt_strat(df, maximize=maximize), f"owsa_opt_strat_{outcome}")
        return {'mode': 'owsa', 'parameters': [r.name for r in cfg.ranges], 'outcomes': list(results)}

    def run_twsa(self) -> Dict[str, Any]:
        cfg = self.config
        results = run_twsa_det(
            self.model_fn, cfg.ranges, cfg.params_basecase, nsamp=cfg.dsa.nsamp,
            fixed_args=cfg.model_args, progress=self.progress,
        )
        for outcome, df in results.items():
            self._write(df, f"twsa_{outcome}")
            maximize = outcome != cfg.cost_outcome
            self._write(twsa_opt_strat(df, maximize=maximize), f"twsa_opt_strat_{outcome}")
        return {'mode': 'twsa', 'parameters': [r.name for r in cfg.ranges], 'outcomes': list(results)}

    def run(self, mode: str) -> Dict[str, Any]:
        runners = {'psa': self.run_psa, 'owsa': self.run_owsa, 'twsa': self.run_twsa}
        if mode not in runners:
            raise ConfigurationError(f"unknown mode {mode!r}")
        return runners[mode]()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the sensitivity analysis CLI"""
    parser = argparse.ArgumentParser(description='PSA / DSA for decision-analytic models')
    parser.add_argument('--config', type=str, help='JSON analysis file (default: Markov demo)')
    parser.add_argument('--mode', choices=['psa', 'owsa', 'twsa'], default='psa',
                        help='Analysis to run')
    parser.add_argument('--output', type=str, default='./outputs', help='Output directory')
    parser.add_argument('--seed', type=int, help='Random seed for PSA sampling')
    parser.add_argument('--progress', action='store_true', help='Show progress bars')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = load_analysis_config(args.config) if args.config else demo_config()
        if args.seed is not None:
            config.sampling.seed = args.seed
        pipeline = SensitivityPipeline(config, args.output, progress=args.progress)
        summary = pipeline.run(args.mode)
    except SensitivityAnalysisError as exc:
        logger.error(f"{type(exc).__name__}: {exc}")
        return 1

    print(json.dumps(summary, indent=2))
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
