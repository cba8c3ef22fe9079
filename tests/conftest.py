"""Shared candle builders for tests."""

import numpy as np
import pytest

from trading_engine.core.types import Candle

T0 = 1_700_000_000
HOUR = 3600


def make_candles(closes, start=T0, step=HOUR):
    return [
        Candle(timestamp=start + i * step, open=c, high=c, low=c, close=c, volume=1.0)
        for i, c in enumerate(closes)
    ]


def random_walk(n=300, seed=7, start_price=100.0):
    rng = np.random.RandomState(seed)
    closes = start_price * np.exp(np.cumsum(rng.normal(0.0, 0.02, size=n)))
    return make_candles([float(c) for c in closes])


@pytest.fixture
def flat_candles():
    return make_candles([100.0] * 60)


@pytest.fixture
def rising_candles():
    return make_candles([100.0 + i for i in range(120)])
