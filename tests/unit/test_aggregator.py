"""
Test per il Result Aggregator.
"""
import pytest
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from aggregator.result_aggregator import ResultAggregator
from core.models import Insight, InsightType, SearchResult

NOW = datetime(2026, 10, 19, 12, 0, 0)


class TestResultAggregator:
    """Test per ResultAggregator."""

    @pytest.fixture
    def aggregator(self):
        """Aggregatore con istante fisso."""
        return ResultAggregator(now=lambda: NOW)

    def test_remove_duplicates_first_wins(self, aggregator):
        results = [
            SearchResult(title="A", link="https://a.com"),
            SearchResult(title="B", link="https://b.com"),
            SearchResult(title="A2", link="https://a.com"),
        ]
        unique = aggregator.remove_duplicates(results)
        assert [r.title for r in unique] == ["A", "B"]

    def test_remove_duplicates_idempotent(self, aggregator, sample_results):
        once = aggregator.remove_duplicates(sample_results + sample_results)
        assert aggregator.remove_duplicates(once) == once
        assert len(once) == len(sample_results)

    def test_remove_duplicates_empty(self, aggregator):
        assert aggregator.remove_duplicates([]) == []

    def test_extract_insights_sorted_and_bounded(self, aggregator, sample_results):
        insights = aggregator.extract_insights(sample_results)

        assert insights
        scores = [i.relevance_score for i in insights]
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= s <= 1.0 for s in scores)

    def test_extract_insights_max(self):
        aggregator = ResultAggregator(max_insights=2, now=lambda: NOW)
        results = [
            SearchResult(title=f"market {i}", link=f"https://m.com/{i}", snippet="market growth trend")
            for i in range(5)
        ]
        assert len(aggregator.extract_insights(results)) == 2

    def test_result_without_keywords_yields_nothing(self, aggregator):
        result = SearchResult(title="Ricetta", link="https://r.com", snippet="pasta al pomodoro")
        assert aggregator.extract_insights([result]) == []

    def test_one_result_many_categories(self, aggregator):
        result = SearchResult(
            title="Market trend report",
            link="https://x.com",
            snippet="new regulation affects every competitor",
        )
        types = {i.type for i in aggregator.extract_insights([result])}
        assert {InsightType.MARKET, InsightType.TREND, InsightType.REGULATION,
                InsightType.COMPETITOR} <= types

    def test_market_content_uses_size_sentence(self, aggregator, sample_results):
        insights = aggregator.extract_insights(sample_results[:1])
        market = next(i for i in insights if i.type == InsightType.MARKET)
        assert market.content.startswith("市場規模")
        assert market.content.endswith("億")

    @pytest.mark.parametrize("position,expected", [
        (1, 0.95),
        (5, 0.75),
        (10, 0.5),
        (25, 0.5),
        (None, 0.5),
    ])
    def test_relevance_position(self, aggregator, position, expected):
        result = SearchResult(title="t", link="https://x.com", snippet="plain", position=position)
        assert aggregator.calculate_relevance(result, InsightType.TREND, NOW) == pytest.approx(expected)

    @pytest.mark.parametrize("date,bonus", [
        ("3 days ago", 0.2),
        ("2 months ago", 0.1),
        ("2025-01-01", 0.0),
        ("2026-10-15T08:00:00Z", 0.2),
        ("2026-08-20T00:00:00.000+09:00", 0.1),
        ("2026-03-01T00:00:00Z", 0.0),
        ("non una data", 0.0),
    ])
    def test_relevance_freshness(self, aggregator, date, bonus):
        result = SearchResult(title="t", link="https://x.com", snippet="plain", published_date=date)
        score = aggregator.calculate_relevance(result, InsightType.TREND, NOW)
        assert score == pytest.approx(0.5 + bonus)

    def test_relevance_clamped(self, aggregator):
        """Tutti i bonus insieme non superano 1.0."""
        result = SearchResult(
            title="Market size",
            link="https://x.com",
            snippet="market size 3 billion",
            position=1,
            published_date="1 day ago",
        )
        assert aggregator.calculate_relevance(result, InsightType.MARKET, NOW) == 1.0

    def test_innovation_bonus(self, aggregator):
        result = SearchResult(title="t", link="https://x.com", snippet="A unicorn in PropTech")
        assert aggregator.calculate_relevance(result, InsightType.INNOVATION, NOW) == pytest.approx(0.65)

    def test_categorize_by_region(self, aggregator, sample_results):
        categorized = aggregator.categorize_by_region(sample_results)
        assert [r.link for r in categorized.domestic] == ["https://www.example.co.jp/market"]
        assert len(categorized.global_results) == 2
        assert categorized.counts() == {"domestic": 1, "global": 2}

    @pytest.mark.parametrize("link,title,expected", [
        ("https://nikkei.com/article", "日本の市場", True),
        ("https://www.example.jp/x", "English title", True),
        ("https://example.com/x", "English title", False),
        ("https://jp.example.com/x", "English title", False),
    ])
    def test_is_domestic(self, aggregator, link, title, expected):
        assert aggregator.is_domestic(SearchResult(title=title, link=link)) is expected

    def test_analyze_applicability(self, aggregator, sample_results):
        analysis = aggregator.analyze_applicability(sample_results[1:2])
        assert analysis.applicable is True
        assert "Opportunità di partnership" in analysis.opportunities
        assert "Interesse degli investitori" in analysis.opportunities
        assert "1 casi esteri" in analysis.reasoning

    def test_analyze_applicability_empty(self, aggregator):
        analysis = aggregator.analyze_applicability([])
        assert analysis.applicable is False
        assert analysis.adaptations == []

    def test_applicability_lists_deduplicated(self, aggregator):
        results = [
            SearchResult(title=f"case {i}", link=f"https://c.com/{i}", snippet="localization and regulation")
            for i in range(4)
        ]
        analysis = aggregator.analyze_applicability(results)
        assert analysis.adaptations == ["Necessaria localizzazione"]
        assert analysis.challenges == ["Necessario adeguamento normativo"]

    def test_group_insights(self, aggregator):
        insights = [
            Insight(InsightType.MARKET, "market size 3 billion", "https://a.com", 0.9),
            Insight(InsightType.COMPETITOR, "competitor A", "https://b.com", 0.8),
            Insight(InsightType.TREND, "AI technology trend", "https://c.com", 0.7),
            Insight(InsightType.INNOVATION, "unicorn startup", "https://d.com", 0.6),
        ]
        market, global_insights = aggregator.group_insights(insights)
        assert market.market_size == "market size 3 billion"
        assert market.competitors == ["competitor A"]
        assert global_insights.technologies == ["AI technology trend"]
        assert global_insights.innovations == ["unicorn startup"]
        assert global_insights.applicability == ""

    def test_collect_sources(self, aggregator):
        results = [SearchResult(title="t", link=f"https://s.com/{i % 12}") for i in range(30)]
        sources = aggregator.collect_sources(results)
        assert len(sources) == 10
        assert len(set(sources)) == 10
