import itertools

import pytest

from crowd_intel.models.schemas import CrowdLevel, SignalScores
from crowd_intel.services.crowd_index import (
    LEVEL_COLORS,
    LEVEL_THRESHOLDS,
    calculate_crowd_index,
    color_for_level,
    determine_crowd_level,
)
from crowd_intel.utils import round_half_up

LEVEL_ORDER = [CrowdLevel.QUIET, CrowdLevel.MODERATE, CrowdLevel.BUSY, CrowdLevel.VERY_BUSY]


@pytest.mark.parametrize("index,level", [
    (0, CrowdLevel.QUIET),
    (24, CrowdLevel.QUIET),
    (25, CrowdLevel.MODERATE),
    (49, CrowdLevel.MODERATE),
    (50, CrowdLevel.BUSY),
    (74, CrowdLevel.BUSY),
    (75, CrowdLevel.VERY_BUSY),
    (100, CrowdLevel.VERY_BUSY),
])
def test_level_thresholds(index, level):
    assert determine_crowd_level(index) == level


def test_level_table_is_one_ordered_policy():
    assert LEVEL_THRESHOLDS == [
        (25, CrowdLevel.QUIET),
        (50, CrowdLevel.MODERATE),
        (75, CrowdLevel.BUSY),
        (101, CrowdLevel.VERY_BUSY),
    ]
    assert [level for _, level in LEVEL_THRESHOLDS] == LEVEL_ORDER
    assert set(LEVEL_COLORS) == set(LEVEL_ORDER)


def test_level_is_monotonic_in_index():
    ranks = [LEVEL_ORDER.index(determine_crowd_level(i)) for i in range(101)]
    assert ranks == sorted(ranks)


def test_index_is_an_integer_between_0_and_100():
    values = [None, -20, 0, 37.3, 50, 99.9, 100, 250]
    for live, weather, sensor in itertools.product(values, repeat=3):
        result = calculate_crowd_index(SignalScores(
            live_popularity=live, weather=weather, sensor=sensor, event=30, social=50
        ))
        assert isinstance(result.crowd_index, int)
        assert 0 <= result.crowd_index <= 100
        assert result.crowd_level == determine_crowd_level(result.crowd_index)


def test_one_event_with_neutral_signals():
    result = calculate_crowd_index(SignalScores(
        live_popularity=50, historic_popularity=50, social=50, weather=50, event=30
    ))

    # 50 * (.55 + .10 + .20 + .10) + 30 * .05 = 49
    assert result.crowd_index == 49
    assert result.crowd_level == CrowdLevel.MODERATE
    assert result.used_sensors is False


def test_sensor_reading_switches_weight_table():
    result = calculate_crowd_index(SignalScores(
        sensor=100, live_popularity=0, historic_popularity=100, social=0, weather=0, event=0
    ))

    # historic popularity carries no weight once a sensor reports
    assert result.crowd_index == 50
    assert result.used_sensors is True
    assert "historic_popularity" not in result.breakdown


def test_missing_signals_are_renormalized_not_zero_filled():
    assert calculate_crowd_index(SignalScores(live_popularity=80)).crowd_index == 80
    assert calculate_crowd_index(SignalScores(live_popularity=80, weather=None, sensor=None)).crowd_index == 80


def test_no_signals_scores_zero():
    result = calculate_crowd_index(SignalScores())

    assert result.crowd_index == 0
    assert result.crowd_level == CrowdLevel.QUIET
    assert result.breakdown == {}


def test_result_does_not_depend_on_signal_order():
    values = {"live_popularity": 63, "social": 71, "weather": 22, "event": 60}
    results = {
        calculate_crowd_index(SignalScores(**dict(order))).crowd_index
        for order in itertools.permutations(values.items())
    }
    assert len(results) == 1


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(49.49) == 49


def test_level_colors():
    assert color_for_level(CrowdLevel.QUIET) == "#00FF00"
    assert color_for_level("BUSY") == "#FFA500"
    assert set(LEVEL_COLORS) == set(LEVEL_ORDER)
