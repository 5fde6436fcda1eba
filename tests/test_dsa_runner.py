import numpy as np
import pandas as pd
import pytest

from evaluation import (
    ParameterRange,
    owsa_opt_strat,
    owsa_tornado_data,
    parse_range_table,
    run_owsa_det,
    run_twsa_det,
    twsa_opt_strat,
)
from utils.exceptions import ConfigurationError, ModelEvaluationFailure


def linear_model(params):
    return pd.DataFrame({
        'Strategy': ['A', 'B'],
        'Effect': [params['p'], 1 - params['p']],
        'Score': [2 * params['p'] + params['q'], params['q']],
    })


BASE = {'p': 0.5, 'q': 1.0, 'r': 7.0}


def test_one_way_grid_is_linearly_spaced():
    results = run_owsa_det(linear_model, [ParameterRange('p', 0, 1)], BASE, nsamp=5)
    effect = results['Effect']
    assert list(effect.columns) == ['parameter', 'param_val', 'strategy', 'outcome_val']
    a_rows = effect[effect['strategy'] == 'A']
    np.testing.assert_allclose(a_rows['param_val'].to_numpy(), [0, 0.25, 0.5, 0.75, 1.0])
    assert effect['param_val'].nunique() == 5
    assert set(results) == {'Effect', 'Score'}


def test_one_way_holds_other_parameters_at_base_case():
    seen = []

    def recording_model(params):
        seen.append(dict(params))
        return linear_model(params)

    run_owsa_det(recording_model, [('p', 0, 1), ('q', 0, 3)], BASE, nsamp=3)
    assert len(seen) == 6
    for params in seen[:3]:
        assert params['q'] == 1.0 and params['r'] == 7.0
    for params in seen[3:]:
        assert params['p'] == 0.5


def test_one_way_accepts_dataframe_range_table():
    table = pd.DataFrame({'pars': ['p', 'q'], 'min': [0, 0], 'max': [1, 3]})
    results = run_owsa_det(linear_model, table, BASE, nsamp=4, outcomes=['Score'])
    assert list(results) == ['Score']
    assert results['Score']['parameter'].unique().tolist() == ['p', 'q']
    assert len(results['Score']) == 2 * 4 * 2


def test_range_table_needs_three_columns():
    table = pd.DataFrame({'pars': ['p'], 'min': [0], 'max': [1], 'extra': [2]})
    with pytest.raises(ConfigurationError):
        parse_range_table(table)


def test_range_with_min_above_max():
    with pytest.raises(ConfigurationError):
        ParameterRange('p', 1, 0)


def test_range_parameter_must_be_in_base_case():
    with pytest.raises(ConfigurationError):
        run_owsa_det(linear_model, [('z', 0, 1)], BASE, nsamp=3)


def test_nsamp_must_allow_a_sweep():
    with pytest.raises(ConfigurationError):
        run_owsa_det(linear_model, [('p', 0, 1)], BASE, nsamp=1)


def test_model_failure_reports_parameter_and_value():
    def failing_model(params):
        if params['p'] > 0.6:
            raise ValueError('p too large')
        return linear_model(params)

    with pytest.raises(ModelEvaluationFailure) as excinfo:
        run_owsa_det(failing_model, [('p', 0, 1)], BASE, nsamp=3)
    assert excinfo.value.context == {'parameter': 'p', 'value': 1.0}


def test_two_way_full_grid():
    results = run_twsa_det(linear_model, [('p', 0, 1), ('q', 0, 2)], BASE, nsamp=3)
    score = results['Score']
    assert list(score.columns) == ['p', 'q', 'strategy', 'outcome_val']
    for strategy in ('A', 'B'):
        rows = score[score['strategy'] == strategy]
        assert len(rows) == 9
        assert not rows.duplicated(subset=['p', 'q']).any()
    a = score[(score['strategy'] == 'A') & (score['p'] == 1.0) & (score['q'] == 2.0)]
    assert a['outcome_val'].iloc[0] == pytest.approx(4.0)


@pytest.mark.parametrize('ranges', [[('p', 0, 1)], [('p', 0, 1), ('q', 0, 1), ('r', 0, 1)]])
def test_two_way_requires_exactly_two_parameters(ranges):
    with pytest.raises(ConfigurationError):
        run_twsa_det(linear_model, ranges, BASE, nsamp=3)


def test_tornado_orders_by_range():
    results = run_owsa_det(linear_model, [('p', 0, 1), ('q', 0, 3)], BASE, nsamp=5)
    tornado = owsa_tornado_data(results['Score'], strategy='A')
    assert tornado['parameter'].tolist() == ['q', 'p']
    assert tornado['range'].tolist() == pytest.approx([3.0, 2.0])
    assert tornado.loc[1, 'outcome_low'] == pytest.approx(1.0)
    assert tornado.loc[1, 'outcome_high'] == pytest.approx(3.0)


def test_tornado_needs_strategy_for_multi_strategy_table():
    results = run_owsa_det(linear_model, [('p', 0, 1)], BASE, nsamp=3)
    with pytest.raises(ConfigurationError):
        owsa_tornado_data(results['Score'])


def test_owsa_optimal_strategy_switches():
    results = run_owsa_det(linear_model, [('p', 0, 1)], BASE, nsamp=5)
    opt = owsa_opt_strat(results['Effect'])
    assert list(opt.columns) == ['parameter', 'param_val', 'strategy']
    assert opt['strategy'].tolist() == ['B', 'B', 'A', 'A', 'A']


def test_owsa_optimal_strategy_minimizing():
    results = run_owsa_det(linear_model, [('p', 0, 1)], BASE, nsamp=5)
    opt = owsa_opt_strat(results['Effect'], maximize=False)
    assert opt['strategy'].tolist() == ['A', 'A', 'A', 'B', 'B']


def test_twsa_optimal_strategy_grid():
    results = run_twsa_det(linear_model, [('p', 0, 1), ('q', 0, 2)], BASE, nsamp=3)
    opt = twsa_opt_strat(results['Effect'])
    assert list(opt.columns) == ['p', 'q', 'strategy']
    assert len(opt) == 9


@pytest.mark.parametrize('name', ['strategy', 'outcome_val', 'parameter', 'param_val'])
def test_range_named_like_output_column(name):
    base = dict(BASE, **{name: 1.0})
    with pytest.raises(ConfigurationError):
        run_owsa_det(linear_model, [(name, 0, 2)], base, nsamp=3)
    with pytest.raises(ConfigurationError):
        run_twsa_det(linear_model, [('p', 0, 1), (name, 0, 2)], base, nsamp=3)
