import pytest

from integrations.state import StateStore
from integrations.trends import (
    TrendCache,
    TrendCategory,
    TrendItem,
    format_trend_alert,
    parse_trends,
    resolve_category,
)


@pytest.mark.parametrize("value,expected", [
    ("Viral Audio", TrendCategory.AUDIO),
    ("viral audio", TrendCategory.AUDIO),
    ("music", TrendCategory.AUDIO),
    ("hashtags please", TrendCategory.PLOTS),
    ("video", TrendCategory.FORMATS),
    ("", TrendCategory.GENERAL),
    ("gibberish", TrendCategory.GENERAL),
])
def test_resolve_category(value, expected):
    assert resolve_category(value) is expected


def test_resolve_category_falls_back_to_given_default():
    assert resolve_category(None, default=TrendCategory.FORMATS) is TrendCategory.FORMATS


def test_parse_trends_ignores_prose_and_malformed_entries():
    text = 'Sure!\n```json\n[{"platform": "TikTok", "trendName": "Melting text", "growthMetric": "+300%"}, "junk", {"platform": "X"}]\n```'
    items = parse_trends(text, TrendCategory.GENERAL)
    assert len(items) == 1
    assert items[0].growth_metric == "+300%"
    assert items[0].category == "General"


@pytest.mark.parametrize("text", [None, "", "no json here", '{"trendName": "object not list"}'])
def test_parse_trends_unusable_responses_are_empty(text):
    assert parse_trends(text, TrendCategory.GENERAL) == []


def test_cache_replaces_wholesale_and_reloads(tmp_path):
    cache = TrendCache(StateStore(tmp_path))
    cache.replace([TrendItem("TikTok", "A"), TrendItem("Instagram", "B")])
    cache.replace([TrendItem("Instagram", "C", category="Viral Audio")])

    reloaded = TrendCache(StateStore(tmp_path))
    assert [(t.trend_name, t.category) for t in reloaded.items()] == [("C", "Viral Audio")]


def test_cache_skips_malformed_records(tmp_path):
    store = StateStore(tmp_path)
    store.save("trends", [{"platform": "TikTok"}, {"trendName": "Ok"}])
    assert [t.trend_name for t in TrendCache(store).items()] == ["Ok"]


def test_alert_mentions_trend_details():
    alert = format_trend_alert(TrendItem(
        platform="TikTok", trend_name="Clay shaders", description="Soft clay look",
        hype_reason="Cozy aesthetic", category="Viral Audio", difficulty="Easy",
    ))
    assert "RADAR ALERT" in alert
    assert "🎵 *Trend:* Clay shaders" in alert
    assert "TikTok" in alert
    assert "High activity" in alert
    assert "Easy" in alert
