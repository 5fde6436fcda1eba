import numpy as np
import pandas as pd
import pytest

from analysis import make_psa_obj


def toy_model(params, cost_scale=1.0):
    """Two strategies whose outcomes are simple functions of c and e."""
    return pd.DataFrame({
        'Strategy': ['A', 'B'],
        'Cost': [params['c'] * cost_scale, params['c'] * 2 + 50],
        'QALY': [params['e'], params['e'] + 0.5],
    })


@pytest.fixture
def model():
    return toy_model


@pytest.fixture
def example_psa():
    """Three strategies, 1000 samples, seeded."""
    rng = np.random.default_rng(11)
    n = 1000
    cost = np.column_stack([
        rng.normal(10000, 1000, n),
        rng.normal(15000, 1500, n),
        rng.normal(22000, 2000, n),
    ])
    effect = np.column_stack([
        rng.normal(5.0, 0.3, n),
        rng.normal(5.2, 0.3, n),
        rng.normal(5.35, 0.3, n),
    ])
    params = pd.DataFrame({'p': rng.uniform(0, 1, n), 'q': rng.normal(0, 1, n)})
    return make_psa_obj(cost, effect, params, ['Chemo', 'Radio', 'Surgery'])
