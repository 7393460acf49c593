"""
Test per i modelli dati.
"""
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from core.exceptions import TransientError, ValidationError
from core.models import (
    AgentMetrics,
    CacheEntry,
    ErrorRecord,
    QuerySet,
    Region,
    SearchQuery,
    SearchResult,
)


class TestSearchQuery:
    """Test per SearchQuery."""

    def test_cache_key_deterministic(self, domestic_query):
        """Stessi parametri, stessa chiave."""
        copy = SearchQuery(
            text=domestic_query.text,
            region=Region.DOMESTIC,
            geo_code="jp",
            lang_code="ja",
            purpose="altro scopo",
        )
        assert copy.cache_key == domestic_query.cache_key

    @pytest.mark.parametrize("field,value", [
        ("geo_code", "us"),
        ("lang_code", "en"),
        ("result_count", 20),
        ("result_type", "news"),
    ])
    def test_cache_key_depends_on_parameters(self, domestic_query, field, value):
        """Ogni parametro che cambia la risposta cambia la chiave."""
        params = {
            "text": domestic_query.text,
            "region": domestic_query.region,
            "geo_code": domestic_query.geo_code,
            "lang_code": domestic_query.lang_code,
        }
        params[field] = value
        assert SearchQuery(**params).cache_key != domestic_query.cache_key

    def test_to_payload(self, global_query):
        """Corpo della richiesta per il provider."""
        assert global_query.to_payload() == {
            "q": "AI real estate startup unicorn funding",
            "gl": "us",
            "hl": "en",
            "num": 10,
            "type": "search",
        }

    def test_query_is_immutable(self, domestic_query):
        """Le query pianificate non si modificano."""
        with pytest.raises(AttributeError):
            domestic_query.text = "altro"


class TestQuerySet:
    """Test per QuerySet."""

    def test_all_queries_domestic_first(self, domestic_query, global_query):
        """Le domestiche precedono le globali."""
        query_set = QuerySet(domestic_queries=[domestic_query], global_queries=[global_query])
        assert query_set.all_queries() == [domestic_query, global_query]

    def test_to_dict(self, domestic_query, global_query):
        """Serializzazione con purpose e sorgente."""
        query_set = QuerySet(
            domestic_queries=[domestic_query],
            global_queries=[global_query],
            source="fallback",
        )
        data = query_set.to_dict()
        assert data["source"] == "fallback"
        assert data["domestic"] == [{"query": domestic_query.text, "purpose": "market_size"}]
        assert data["global"][0]["purpose"] == "startups"


class TestCacheEntry:
    """Test per CacheEntry."""

    def test_valid_before_ttl(self):
        entry = CacheEntry(key="k", results=[], stored_at=100.0, ttl=300)
        assert entry.is_valid(399.9) is True

    def test_expired_at_ttl(self):
        """Valida solo se now - stored_at < ttl."""
        entry = CacheEntry(key="k", results=[], stored_at=100.0, ttl=300)
        assert entry.is_valid(400.0) is False


class TestErrorRecord:
    """Test per ErrorRecord."""

    def test_from_exception_transient(self):
        """Tipo e flag retryable ricavati dall'eccezione."""
        record = ErrorRecord.from_exception(TransientError("HTTP 503"), "Search failed")
        assert record.kind == "TransientError"
        assert record.retryable is True
        assert record.message == "Search failed: HTTP 503"

    def test_from_generic_exception(self):
        """Eccezioni non del dominio non sono ritentabili."""
        record = ErrorRecord.from_exception(RuntimeError("boom"))
        assert record.kind == "RuntimeError"
        assert record.retryable is False
        assert record.message == "boom"

    def test_to_dict(self):
        record = ErrorRecord.from_exception(ValidationError("Il tema è obbligatorio"))
        data = record.to_dict()
        assert data["kind"] == "ValidationError"
        assert data["retryable"] is False
        assert "timestamp" in data


class TestAgentMetrics:
    """Test per AgentMetrics."""

    def test_defaults(self):
        metrics = AgentMetrics()
        assert metrics.api_calls_count == 0
        assert metrics.tokens_used == 0
        assert metrics.cache_hit_rate_pct == 0.0
        assert metrics.errors == []

    def test_record_llm_call(self):
        """Token e chiamate LLM si accumulano."""
        metrics = AgentMetrics()
        metrics.record_llm_call(120)
        metrics.record_llm_call(80)
        assert metrics.llm_calls_count == 2
        assert metrics.tokens_used == 200
        assert metrics.api_calls_count == 0

    def test_to_dict(self):
        metrics = AgentMetrics(execution_time_ms=1234.56, api_calls_count=8, cache_hit_rate_pct=25.0)
        metrics.record_error(ErrorRecord(kind="LLMError", message="x"))
        data = metrics.to_dict()
        assert data["execution_time_ms"] == 1234.6
        assert data["api_calls_count"] == 8
        assert data["cache_hit_rate_pct"] == 25.0
        assert len(data["errors"]) == 1


class TestSearchResult:
    """Test per SearchResult."""

    def test_text_combines_title_and_snippet(self):
        result = SearchResult(title="Titolo", link="https://a.com", snippet="Snippet")
        assert result.text == "Titolo Snippet"
