import numpy as np
import pytest

from analysis import calculate_icers, frontier_strategies, incremental_outcomes
from analysis.icers import StrategyPoint, extended_dominance
from utils.exceptions import ConfigurationError, DimensionMismatch


STRATEGIES = ['A', 'B', 'C', 'D', 'E']
COSTS = [100, 150, 300, 320, 400]
EFFECTS = [1.0, 1.2, 1.3, 1.5, 1.1]


def test_dominance_statuses():
    icers = calculate_icers(COSTS, EFFECTS, STRATEGIES).set_index('Strategy')
    assert icers.loc['A', 'Status'] == 'ND'
    assert icers.loc['B', 'Status'] == 'ND'
    assert icers.loc['C', 'Status'] == 'ED'
    assert icers.loc['D', 'Status'] == 'ND'
    assert icers.loc['E', 'Status'] == 'D'


def test_frontier_icers():
    icers = calculate_icers(COSTS, EFFECTS, STRATEGIES)
    frontier = icers[icers['Status'] == 'ND']
    assert frontier['Strategy'].tolist() == ['A', 'B', 'D']
    assert np.isnan(frontier['ICER'].iloc[0])
    assert frontier['ICER'].iloc[1] == pytest.approx(250.0)
    assert frontier['ICER'].iloc[2] == pytest.approx(170 / 0.3)
    dominated = icers[icers['Status'] != 'ND']
    assert dominated['ICER'].isna().all()


def test_frontier_rows_come_first():
    icers = calculate_icers(COSTS, EFFECTS, STRATEGIES)
    assert icers['Status'].tolist()[:3] == ['ND', 'ND', 'ND']


def test_effect_tie_goes_to_cheaper():
    assert frontier_strategies([100, 120], [1.0, 1.0], ['A', 'B']) == ['A']


def test_single_strategy_is_frontier():
    icers = calculate_icers([10], [1], ['only'])
    assert icers['Status'].tolist() == ['ND']


def test_strategy_with_missing_outcome_excluded():
    icers = calculate_icers([100, np.nan, 200], [1.0, np.nan, 2.0], ['A', 'B', 'C'])
    assert icers['Strategy'].tolist() == ['A', 'C']


@pytest.mark.parametrize('seed', range(5))
def test_frontier_invariants_on_random_strategies(seed):
    rng = np.random.default_rng(seed)
    costs = rng.uniform(0, 10000, 8)
    effects = rng.uniform(0, 10, 8)
    names = [f"S{i}" for i in range(8)]
    icers = calculate_icers(costs, effects, names)
    frontier = icers[icers['Status'] == 'ND']
    assert np.all(np.diff(frontier['Effect'].to_numpy()) > 0)
    ratios = frontier['ICER'].to_numpy()[1:]
    assert np.all(ratios > 0)
    assert np.all(np.diff(ratios) >= -1e-9)


def test_extended_dominance_does_not_mutate_input():
    points = (StrategyPoint('A', 0, 0), StrategyPoint('B', 100, 1), StrategyPoint('C', 120, 2))
    frontier, removed = extended_dominance(points)
    assert [p.strategy for p in frontier] == ['A', 'C']
    assert [p.strategy for p in removed] == ['B']
    assert len(points) == 3


def test_misaligned_inputs():
    with pytest.raises(DimensionMismatch):
        calculate_icers([1, 2], [1], ['A', 'B'])


def test_duplicate_strategy_names():
    with pytest.raises(ConfigurationError):
        calculate_icers([1, 2], [1, 2], ['A', 'A'])


class TestIncrementalOutcomes:

    def test_relations(self):
        inc = incremental_outcomes(
            [100, 200, 50, 300, 100],
            [1.0, 1.5, 1.2, 0.8, 1.0],
            ['ref', 'costly_better', 'dominant', 'dominated', 'same'],
            reference='ref',
        ).set_index('Strategy')
        assert inc.loc['ref', 'Relation'] == 'reference'
        assert inc.loc['costly_better', 'Relation'] == 'icer'
        assert inc.loc['costly_better', 'ICER'] == pytest.approx(200.0)
        assert inc.loc['dominant', 'Relation'] == 'dominant'
        assert inc.loc['dominated', 'Relation'] == 'dominated'
        assert inc.loc['same', 'Relation'] == 'equivalent'
        assert np.isnan(inc.loc['dominated', 'ICER'])

    def test_zero_incremental_effect_reports_dominance(self):
        inc = incremental_outcomes([100, 150], [1.0, 1.0], ['A', 'B']).set_index('Strategy')
        assert inc.loc['B', 'Relation'] == 'dominated'
        assert np.isnan(inc.loc['B', 'ICER'])

    def test_default_reference_is_cheapest(self):
        inc = incremental_outcomes([300, 100, 200], [3, 1, 2], ['A', 'B', 'C'])
        assert inc.loc[inc['Relation'] == 'reference', 'Strategy'].tolist() == ['B']

    def test_unknown_reference(self):
        with pytest.raises(ConfigurationError):
            incremental_outcomes([1, 2], [1, 2], ['A', 'B'], reference='Z')
