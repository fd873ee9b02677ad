"""Property-based tests for chart marker derivation"""
from datetime import timedelta

from hypothesis import given, settings, strategies as st

from dashboard.config.timezone import TimezoneConverter, pattern_to_timestamp
from dashboard.core.domain.pattern import PatternOccurrence
from dashboard.core.markers.marker_pipeline import (
    BEARISH_COLOR,
    BULLISH_COLOR,
    MarkerPipeline,
    collect_patterns,
    derive_markers,
    format_pattern_name,
    format_timeframe,
)
from dashboard.core.state.pattern_visibility import PatternVisibility
from dashboard.core.state.settings_store import MemorySettingsStore
from dashboard.core.state.snapshot_store import SnapshotStore
from dashboard.core.state.timeframe_settings import TimeframeSelection

from conftest import make_bar, make_market_data

UTC_VIEWER = timedelta(0)


def occurrence(name="doji", classification="neutral", minutes=5, yyyymmdd=20240315, hhmm=930):
    return PatternOccurrence(
        name=name,
        classification=classification,
        timeframe=format_timeframe(minutes),
        timeframe_minutes=minutes,
        yyyymmdd=yyyymmdd,
        hhmm=hhmm,
    )


def test_format_pattern_name():
    assert format_pattern_name("bullish_engulfing") == "Bullish Engulfing"
    assert format_pattern_name("doji") == "Doji"
    assert format_pattern_name("three_white_soldiers") == "Three White Soldiers"
    assert format_pattern_name("hammer_") == "Hammer "


def test_format_timeframe():
    assert format_timeframe(5) == "5m"
    assert format_timeframe(30) == "30m"
    assert format_timeframe(60) == "1h"
    assert format_timeframe(120) == "2h"
    assert format_timeframe(60, upper=True) == "1H"


# Feature: market-dashboard, Property 6: Only the chart timeframe is drawn
def test_visible_pattern_on_other_timeframe_is_not_drawn():
    patterns = [occurrence(minutes=5), occurrence(minutes=15)]

    markers = derive_markers(patterns, {"doji-5m"}, 5, UTC_VIEWER)

    assert len(markers) == 1
    assert markers[0].time == pattern_to_timestamp(20240315, 930, UTC_VIEWER)
    assert markers[0].text == "Doji"


def test_pattern_drawn_only_when_visible():
    patterns = [occurrence(minutes=5)]

    assert derive_markers(patterns, set(), 5, UTC_VIEWER) == []
    assert derive_markers(patterns, {"doji-15m"}, 5, UTC_VIEWER) == []
    assert derive_markers(patterns, {"doji-15m", "doji-5m"}, 15, UTC_VIEWER) == []


def test_marker_style_follows_classification():
    patterns = [
        occurrence("hammer", "Bullish", hhmm=935),
        occurrence("shooting_star", "bearish", hhmm=940),
        occurrence("doji", "neutral", hhmm=945),
    ]
    visible = {p.key for p in patterns}

    bullish, bearish, neutral = derive_markers(patterns, visible, 5, UTC_VIEWER)

    assert (bullish.position, bullish.color, bullish.shape) == ('belowBar', BULLISH_COLOR, 'arrowUp')
    assert (bearish.position, bearish.color, bearish.shape) == ('aboveBar', BEARISH_COLOR, 'arrowDown')
    assert (neutral.position, neutral.color, neutral.shape) == ('aboveBar', BEARISH_COLOR, 'arrowDown')
    assert bearish.text == "Shooting Star"


occurrences = st.builds(
    occurrence,
    name=st.sampled_from(["doji", "hammer", "bullish_engulfing", "inside_bar"]),
    classification=st.sampled_from(["bullish", "bearish", "neutral"]),
    minutes=st.sampled_from([1, 5, 15]),
    yyyymmdd=st.sampled_from([20240101, 20240310, 20240315, 20241104]),
    hhmm=st.sampled_from([400, 930, 1015, 1200, 1555]),
)


# Feature: market-dashboard, Property 7: Markers sorted ascending, ties stable
@given(patterns=st.lists(occurrences, max_size=30), chart=st.sampled_from([1, 5, 15]))
@settings(max_examples=100)
def test_markers_always_sorted(patterns, chart):
    visible = {p.key for p in patterns}

    markers = derive_markers(patterns, visible, chart, UTC_VIEWER)

    times = [m.time for m in markers]
    assert times == sorted(times)

    expected = [p for p in patterns if p.timeframe_minutes == chart]
    assert len(markers) == len(expected)

    # Equal times keep input order
    for time in set(times):
        names = [m.text for m in markers if m.time == time]
        expected_names = [
            format_pattern_name(p.name) for p in expected
            if pattern_to_timestamp(p.yyyymmdd, p.hhmm, UTC_VIEWER) == time
        ]
        assert names == expected_names


# Feature: market-dashboard, Property 8: Derivation is pure
@given(patterns=st.lists(occurrences, max_size=20))
@settings(max_examples=50)
def test_derivation_is_repeatable_and_does_not_touch_inputs(patterns):
    visible = frozenset(p.key for p in patterns[::2])
    before = list(patterns)

    first = derive_markers(patterns, visible, 5, UTC_VIEWER)
    second = derive_markers(patterns, visible, 5, UTC_VIEWER)

    assert first == second
    assert patterns == before


def test_collect_patterns_from_market_data():
    market_data = make_market_data({
        5: [make_bar(hhmm=930, patterns=[("doji", "neutral"), ("hammer", "bullish")])],
        60: [make_bar(hhmm=900, patterns=[("inside_bar", "neutral")])],
        15: [make_bar(hhmm=915, patterns=[("doji", "bearish")])],
    })

    patterns = collect_patterns(market_data, [5, 60])

    assert [p.key for p in patterns] == ["doji-5m", "hammer-5m", "inside_bar-1h"]
    assert patterns[2].timeframe_minutes == 60
    assert collect_patterns(None, [5]) == []
    assert collect_patterns(market_data, [3]) == []


def build_pipeline():
    store = SnapshotStore()
    selection = TimeframeSelection(MemorySettingsStore())
    visibility = PatternVisibility()
    pipeline = MarkerPipeline(store, selection, visibility, TimezoneConverter("UTC"))
    return store, selection, visibility, pipeline


def test_pipeline_recomputes_on_each_input():
    store, selection, visibility, pipeline = build_pipeline()
    notified = []
    pipeline.subscribe(notified.append)

    assert pipeline.markers == ()

    store.update(market_data=make_market_data())
    assert [p.key for p in pipeline.patterns] == ["doji-5m", "bullish_engulfing-30m"]
    assert pipeline.markers == ()

    visibility.toggle("doji-5m")
    visibility.toggle("bullish_engulfing-30m")
    assert [m.text for m in pipeline.markers] == ["Doji"]

    selection.set_chart_timeframe(30)
    assert [m.text for m in pipeline.markers] == ["Bullish Engulfing"]
    assert pipeline.markers[0].position == 'belowBar'

    visibility.toggle("bullish_engulfing-30m")
    assert pipeline.markers == ()
    assert len(notified) == 3


def test_pipeline_drops_patterns_of_deselected_timeframes():
    store, selection, visibility, pipeline = build_pipeline()
    store.update(market_data=make_market_data())
    visibility.toggle("doji-5m")
    assert len(pipeline.markers) == 1

    selection.toggle(5)

    assert pipeline.markers == ()
    assert all(p.timeframe_minutes != 5 for p in pipeline.patterns)


def test_pipeline_close_unsubscribes():
    store, selection, visibility, pipeline = build_pipeline()
    pipeline.close()

    store.update(market_data=make_market_data())
    visibility.toggle("doji-5m")

    assert pipeline.patterns == ()
    assert pipeline.markers == ()


def test_off_calendar_occurrence_is_skipped_not_fatal():
    patterns = [
        occurrence("hammer", "bullish", hhmm=935),
        occurrence("doji", "neutral", hhmm=2400),
        occurrence("inside_bar", "neutral", yyyymmdd=20240230),
    ]
    visible = {p.key for p in patterns}

    markers = derive_markers(patterns, visible, 5, UTC_VIEWER)

    assert [m.text for m in markers] == ["Hammer"]


def test_pipeline_keeps_patterns_and_markers_consistent_with_bad_bar():
    store, selection, visibility, pipeline = build_pipeline()
    visibility.toggle("doji-5m")
    visibility.toggle("hammer-5m")

    store.update(market_data=make_market_data({5: [make_bar(hhmm=930, patterns=[("doji", "neutral")])]}))
    assert [m.text for m in pipeline.markers] == ["Doji"]

    store.update(market_data=make_market_data({5: [
        make_bar(hhmm=935, patterns=[("hammer", "bullish")]),
        make_bar(hhmm=2400, patterns=[("doji", "neutral")]),
    ]}))

    assert [p.key for p in pipeline.patterns] == ["hammer-5m", "doji-5m"]
    assert [m.text for m in pipeline.markers] == ["Hammer"]


def test_pipeline_ignores_loading_and_error_flips():
    store, selection, visibility, pipeline = build_pipeline()
    recomputes = []
    original = pipeline.recompute
    pipeline.recompute = lambda: (recomputes.append(1), original())

    store.update(is_loading=True)
    store.update(is_loading=False, error="boom")
    assert recomputes == []

    store.update(market_data=make_market_data(), is_loading=False)
    assert len(recomputes) == 1
    assert len(pipeline.patterns) == 2
