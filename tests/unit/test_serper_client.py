"""
Test per il client Serper.
"""
import pytest
import sys
from pathlib import Path
from unittest.mock import MagicMock

import requests

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from config import SearchConfig
from core.exceptions import AuthError, ConfigurationError, SchemaError, SearchAPIError, TransientError
from search.cache import SearchCache
from search.rate_limiter import RateLimiter
from search.serper_client import SerperSearchClient


def _response(status: int = 200, payload=None, json_error: bool = False):
    response = MagicMock()
    response.status_code = status
    response.reason = "OK" if status == 200 else "Error"
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = payload
    return response


class TestSerperSearchClient:
    """Test per SerperSearchClient."""

    @pytest.fixture
    def session(self):
        return MagicMock()

    @pytest.fixture
    def sleeps(self):
        return []

    @pytest.fixture
    def client(self, session, fake_clock, sleeps):
        """Client con cache, rate limiter e session isolati."""
        return SerperSearchClient(
            settings=SearchConfig(api_key="test-key", max_retries=3),
            cache=SearchCache(ttl_seconds=300, max_entries=100, clock=fake_clock),
            rate_limiter=RateLimiter(capacity=100, interval=60.0, clock=fake_clock),
            session=session,
            sleep_func=sleeps.append,
        )

    @pytest.mark.parametrize("key", ["", "   ", "your_serper_api_key", "changeme"])
    def test_missing_api_key(self, key):
        """API key assente o segnaposto: errore di configurazione."""
        with pytest.raises(ConfigurationError):
            SerperSearchClient(settings=SearchConfig(api_key=key), session=MagicMock())

    def test_search_success(self, client, session, domestic_query, serper_payload):
        """Risultati normalizzati e richiesta corretta."""
        session.post.return_value = _response(payload=serper_payload)

        response = client.search(domestic_query)

        assert response.cached is False
        assert len(response.results) == 2
        assert response.results[0].link == "https://www.example.co.jp/proptech-market"
        assert response.results[0].position == 1
        assert response.total_results == 125000

        _, kwargs = session.post.call_args
        assert kwargs["headers"] == {"X-API-KEY": "test-key"}
        assert kwargs["json"]["gl"] == "jp"
        assert kwargs["json"]["hl"] == "ja"

    def test_second_search_is_cached(self, client, session, domestic_query, serper_payload):
        """Seconda richiesta identica servita dalla cache senza HTTP."""
        session.post.return_value = _response(payload=serper_payload)

        first = client.search(domestic_query)
        second = client.search(domestic_query)

        assert session.post.call_count == 1
        assert second.cached is True
        assert second.search_time_ms == 0.0
        assert second.results == first.results

    def test_cache_expires(self, client, session, domestic_query, serper_payload, fake_clock):
        session.post.return_value = _response(payload=serper_payload)
        client.search(domestic_query)
        fake_clock.advance(301)
        response = client.search(domestic_query)
        assert response.cached is False
        assert session.post.call_count == 2

    def test_news_results_keep_date(self, client, session, global_query):
        session.post.return_value = _response(payload={
            "news": [{"title": "News", "link": "https://n.com/1", "snippet": "s", "date": "2 days ago"}],
        })
        response = client.search(global_query)
        assert response.results[0].published_date == "2 days ago"
        assert response.results[0].position is None

    def test_timeout_returns_empty(self, client, session, domestic_query):
        """Un timeout non è un errore: risultato vuoto."""
        session.post.side_effect = requests.Timeout("timed out")
        response = client.search(domestic_query)
        assert response.results == []
        assert response.cached is False

    def test_network_error_is_transient(self, client, session, domestic_query):
        session.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransientError):
            client.search(domestic_query)

    @pytest.mark.parametrize("status,error", [
        (401, AuthError),
        (403, AuthError),
        (429, TransientError),
        (500, TransientError),
        (503, TransientError),
    ])
    def test_status_mapping(self, client, session, domestic_query, status, error):
        session.post.return_value = _response(status=status)
        with pytest.raises(error) as exc_info:
            client.search(domestic_query)
        assert exc_info.value.status_code == status

    def test_client_error_not_retryable(self, client, session, domestic_query):
        session.post.return_value = _response(status=400)
        with pytest.raises(SearchAPIError) as exc_info:
            client.search(domestic_query)
        assert exc_info.value.retryable is False
        assert not isinstance(exc_info.value, TransientError)

    def test_non_json_body(self, client, session, domestic_query):
        session.post.return_value = _response(json_error=True)
        with pytest.raises(SchemaError):
            client.search(domestic_query)

    @pytest.mark.parametrize("payload", [
        {},
        {"organic": "not a list"},
        {"organic": [{"snippet": "manca title e link"}]},
        ["not", "an", "object"],
    ])
    def test_schema_mismatch(self, client, session, domestic_query, payload):
        session.post.return_value = _response(payload=payload)
        with pytest.raises(SchemaError):
            client.search(domestic_query)

    def test_schema_error_not_cached(self, client, session, domestic_query, serper_payload):
        session.post.side_effect = [_response(payload={}), _response(payload=serper_payload)]
        with pytest.raises(SchemaError):
            client.search(domestic_query)
        assert client.search(domestic_query).cached is False

    def test_retry_transient_then_success(self, client, session, sleeps, domestic_query, serper_payload):
        """Due 503 e poi successo: backoff 1s, 2s."""
        session.post.side_effect = [
            _response(status=503),
            _response(status=503),
            _response(payload=serper_payload),
        ]
        response = client.search_with_retry(domestic_query)
        assert len(response.results) == 2
        assert sleeps == [1.0, 2.0]

    def test_retry_exhausted(self, client, session, sleeps, domestic_query):
        session.post.return_value = _response(status=500)
        with pytest.raises(TransientError):
            client.search_with_retry(domestic_query)
        assert session.post.call_count == 3
        assert len(sleeps) == 2

    def test_no_retry_on_auth_error(self, client, session, sleeps, domestic_query):
        """Errori non ritentabili si propagano subito."""
        session.post.return_value = _response(status=401)
        with pytest.raises(AuthError):
            client.search_with_retry(domestic_query)
        assert session.post.call_count == 1
        assert sleeps == []

    def test_validate_api_key_rejected(self, client, session):
        session.post.return_value = _response(status=401)
        assert client.validate_api_key() is False

    def test_validate_api_key_ok(self, client, session, serper_payload):
        session.post.return_value = _response(payload=serper_payload)
        assert client.validate_api_key() is True
