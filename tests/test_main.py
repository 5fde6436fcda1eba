import json

import pandas as pd
import pytest

from main import AnalysisConfig, main, resolve_model
from models import run_markov
from utils.exceptions import ConfigurationError


def write_config(tmp_path, **overrides):
    raw = {
        'model': 'models.markov_cohort:run_markov',
        'model_args': {'n_cycles': 10},
        'params_basecase': {
            'p_HS': 0.05, 'p_HD': 0.01, 'p_SD': 0.10, 'rr_A': 0.7, 'rr_B': 0.55,
            'c_H': 500, 'c_S': 4000, 'c_A': 600, 'c_B': 1400, 'u_H': 0.95, 'u_S': 0.6,
        },
        'distributions': [
            {'name': 'p_HS', 'family': 'beta', 'parameterization': 'mean, sd', 'params': [0.05, 0.01]},
            {'name': 'c_S', 'family': 'gamma', 'parameterization': 'mean, sd', 'params': [4000, 800]},
        ],
        'ranges': [
            {'name': 'p_HS', 'min': 0.02, 'max': 0.1},
            {'name': 'c_B', 'min': 800, 'max': 2000},
        ],
        'wtp': {'min': 0, 'max': 100000, 'step': 25000},
        'sampling': {'n_samples': 40, 'seed': 1},
        'dsa': {'nsamp': 4},
    }
    raw.update(overrides)
    path = tmp_path / 'analysis.json'
    path.write_text(json.dumps(raw))
    return path


def test_config_wtp_grid_is_inclusive(tmp_path):
    config = AnalysisConfig.from_dict(json.loads(write_config(tmp_path).read_text()))
    assert config.wtp == [0.0, 25000.0, 50000.0, 75000.0, 100000.0]
    assert config.sampling.n_samples == 40
    assert config.dsa.nsamp == 4
    assert [d.name for d in config.distributions] == ['p_HS', 'c_S']


def test_config_missing_key():
    with pytest.raises(ConfigurationError):
        AnalysisConfig.from_dict({'ranges': [{'name': 'p', 'min': 0}]})


def test_resolve_model():
    assert resolve_model('models.markov_cohort:run_markov') is run_markov
    with pytest.raises(ConfigurationError):
        resolve_model('run_markov')
    with pytest.raises(ConfigurationError):
        resolve_model('models.markov_cohort:STATES')


def test_psa_mode_writes_tables(tmp_path, capsys):
    out = tmp_path / 'out'
    assert main(['--config', str(write_config(tmp_path)), '--mode', 'psa', '--output', str(out)]) == 0
    for name in ('psa_parameters', 'psa_results', 'psa_summary', 'icers',
                 'exp_loss', 'ceac', 'ceac_summary', 'evpi'):
        assert (out / f"{name}.csv").exists()
    summary = json.loads(capsys.readouterr().out)
    assert summary['n_samples'] == 40
    assert summary['strategies'] == ['Standard', 'Drug_A', 'Drug_B']
    params = pd.read_csv(out / 'psa_parameters.csv')
    assert list(params.columns) == ['p_HS', 'c_S']


def test_psa_seed_is_reproducible(tmp_path):
    config = write_config(tmp_path)
    main(['--config', str(config), '--output', str(tmp_path / 'a'), '--seed', '9'])
    main(['--config', str(config), '--output', str(tmp_path / 'b'), '--seed', '9'])
    a = pd.read_csv(tmp_path / 'a' / 'psa_parameters.csv')
    b = pd.read_csv(tmp_path / 'b' / 'psa_parameters.csv')
    pd.testing.assert_frame_equal(a, b)


def test_owsa_mode(tmp_path):
    out = tmp_path / 'out'
    assert main(['--config', str(write_config(tmp_path)), '--mode', 'owsa', '--output', str(out)]) == 0
    owsa = pd.read_csv(out / 'owsa_QALY.csv')
    assert len(owsa) == 2 * 4 * 3
    assert (out / 'owsa_opt_strat_Cost.csv').exists()


def test_twsa_mode(tmp_path):
    out = tmp_path / 'out'
    assert main(['--config', str(write_config(tmp_path)), '--mode', 'twsa', '--output', str(out)]) == 0
    twsa = pd.read_csv(out / 'twsa_Cost.csv')
    assert list(twsa.columns) == ['p_HS', 'c_B', 'strategy', 'outcome_val']
    assert len(twsa) == 4 * 4 * 3


def test_twsa_with_three_ranges_fails(tmp_path):
    config = write_config(tmp_path, ranges=[
        {'name': 'p_HS', 'min': 0.02, 'max': 0.1},
        {'name': 'c_B', 'min': 800, 'max': 2000},
        {'name': 'u_S', 'min': 0.4, 'max': 0.8},
    ])
    assert main(['--config', str(config), '--mode', 'twsa', '--output', str(tmp_path / 'out')]) == 1


def test_psa_without_distributions_fails(tmp_path):
    config = write_config(tmp_path, distributions=[])
    assert main(['--config', str(config), '--output', str(tmp_path / 'out')]) == 1
