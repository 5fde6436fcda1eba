import numpy as np
import pandas as pd
import pytest

from analysis import PSA, make_psa_obj
from utils.exceptions import ConfigurationError, DimensionMismatch


def test_matrices_have_samples_by_strategies_shape(example_psa):
    assert example_psa.cost.shape == (1000, 3)
    assert example_psa.effect.shape == (1000, 3)
    assert example_psa.n_sim == 1000
    assert example_psa.n_strategies == 3
    assert list(example_psa.cost.columns) == ['Chemo', 'Radio', 'Surgery']


def test_missing_strategy_names_are_generated():
    cost = pd.DataFrame({'x': [1.0, 2.0], 'y': [3.0, 4.0], 'z': [5.0, 6.0]})
    psa = make_psa_obj(cost, cost * 0.1)
    assert list(psa.strategies) == ['Strategy_1', 'Strategy_2', 'Strategy_3']


def test_cost_effect_shape_mismatch():
    with pytest.raises(DimensionMismatch):
        make_psa_obj(np.ones((10, 3)), np.ones((10, 2)))
    with pytest.raises(DimensionMismatch):
        make_psa_obj(np.ones((10, 3)), np.ones((9, 3)))


def test_parameter_rows_must_match_samples():
    with pytest.raises(DimensionMismatch):
        make_psa_obj(np.ones((10, 2)), np.ones((10, 2)), pd.DataFrame({'p': range(9)}))


def test_strategy_count_must_match_columns():
    with pytest.raises(DimensionMismatch):
        make_psa_obj(np.ones((10, 2)), np.ones((10, 2)), strategies=['A', 'B', 'C'])


def test_needs_cost_or_effect():
    with pytest.raises(ConfigurationError):
        PSA(None, None)


def test_cost_may_be_absent():
    psa = make_psa_obj(None, np.ones((4, 2)))
    assert psa.cost is None
    assert not psa.has_cost
    assert list(psa.summary().columns) == ['Strategy', 'meanEffect']
    with pytest.raises(ConfigurationError):
        psa.calculate_icers()


def test_partially_missing_column_rejected():
    cost = np.ones((5, 2))
    cost[2, 1] = np.nan
    with pytest.raises(DimensionMismatch):
        make_psa_obj(cost, np.ones((5, 2)))


def test_exposed_matrices_are_copies(example_psa):
    cost = example_psa.cost
    cost.iloc[:, :] = 0
    assert example_psa.cost.to_numpy().sum() > 0


def test_input_is_not_aliased():
    cost = np.ones((3, 2))
    psa = make_psa_obj(cost, np.ones((3, 2)))
    cost[:] = 99
    assert psa.cost.to_numpy().max() == 1


def test_summary(example_psa):
    summary = example_psa.summary(calc_sds=True)
    assert list(summary.columns) == ['Strategy', 'meanCost', 'meanEffect', 'sdCost', 'sdEffect']
    np.testing.assert_allclose(summary['meanCost'], example_psa.cost.mean().to_numpy())
    np.testing.assert_allclose(summary['meanEffect'], example_psa.effect.mean().to_numpy())


def test_frontier_on_means(example_psa):
    frontier = example_psa.frontier()
    means = example_psa.summary().set_index('Strategy')
    effects = means.loc[frontier, 'meanEffect'].to_numpy()
    assert np.all(np.diff(effects) > 0)


def test_incremental_outcomes_default_reference(example_psa):
    inc = example_psa.incremental_outcomes()
    ref = inc[inc['Relation'] == 'reference']
    assert ref['Strategy'].tolist() == ['Chemo']
    assert inc.loc[inc['Strategy'] == 'Chemo', 'Inc_Cost'].iloc[0] == 0


def test_repr(example_psa):
    assert 'n_sim=1000' in repr(example_psa)


def test_one_dimensional_input_rejected():
    with pytest.raises(DimensionMismatch):
        make_psa_obj([100, 200], [1.0, 1.5])


def test_single_sample_is_one_row():
    psa = make_psa_obj([[100, 200]], [[1.0, 1.5]])
    assert psa.n_sim == 1
    assert list(psa.strategies) == ['Strategy_1', 'Strategy_2']
