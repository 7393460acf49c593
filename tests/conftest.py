"""
Fixtures pytest per il Ricercatore di Mercato.
"""
import pytest
import json
import threading
from urllib.parse import quote
from pathlib import Path
from typing import Dict, List, Optional
import sys

# Aggiungi la directory root al path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.models import Region, SearchQuery, SearchResponse, SearchResult
from llm.base import BaseLLMClient, LLMResponse
from search.base import BaseSearchClient

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeClock:
    """Orologio manuale per cache e rate limiter."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSearchClient(BaseSearchClient):
    """
    Client di ricerca in memoria.

    responses: testo query -> SearchResponse oppure eccezione da sollevare.
    Le query non mappate restituiscono un risultato unico derivato dal testo.
    """

    def __init__(self, responses: Optional[Dict[str, object]] = None, max_retries: int = 1):
        super().__init__(name="fake", max_retries=max_retries, sleep_func=lambda _: None)
        self.responses = responses or {}
        self.calls: List[SearchQuery] = []
        self._lock = threading.Lock()

    def search(self, query: SearchQuery) -> SearchResponse:
        with self._lock:
            self.calls.append(query)
        outcome = self.responses.get(query.text)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is not None:
            return outcome
        return SearchResponse(
            results=[SearchResult(
                title=f"Result for {query.text}",
                link=f"https://example.com/search/{quote(query.text)}",
                snippet=f"market trend for {query.text}",
                position=1,
            )],
            total_results=1,
        )


class FakeLLMClient(BaseLLMClient):
    """Client LLM che restituisce risposte predefinite in sequenza."""

    def __init__(self, replies: List[object], tokens: int = 100):
        super().__init__("fake-model")
        self.replies = list(replies)
        self.tokens = tokens
        self.prompts: List[str] = []

    def complete(self, prompt: str, system: Optional[str] = None, json_mode: bool = False) -> LLMResponse:
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(text=reply, total_tokens=self.tokens)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Orologio manuale che parte da t=1000."""
    return FakeClock()


@pytest.fixture
def domestic_query() -> SearchQuery:
    """Query domestica di esempio."""
    return SearchQuery(
        text="不動産 AI 市場規模 日本",
        region=Region.DOMESTIC,
        geo_code="jp",
        lang_code="ja",
        purpose="market_size",
    )


@pytest.fixture
def global_query() -> SearchQuery:
    """Query globale di esempio."""
    return SearchQuery(
        text="AI real estate startup unicorn funding",
        region=Region.GLOBAL,
        geo_code="us",
        lang_code="en",
        purpose="startups",
    )


@pytest.fixture
def sample_results() -> List[SearchResult]:
    """Mix di risultati domestici e globali."""
    return [
        SearchResult(
            title="不動産テック市場規模",
            link="https://www.example.co.jp/market",
            snippet="国内の不動産テック市場規模は1兆2000億円に達する見込み",
            position=1,
        ),
        SearchResult(
            title="PropTech startup raises Series B",
            link="https://techcrunch.com/proptech-series-b",
            snippet="The startup raised $50 million in funding for expansion and partnership deals",
            position=2,
            published_date="3 days ago",
        ),
        SearchResult(
            title="Real estate AI competitor landscape",
            link="https://example.com/competitors",
            snippet="Leading competitor vendors in the real estate AI space",
            position=3,
        ),
    ]


@pytest.fixture
def serper_payload() -> dict:
    """Risposta Serper valida con risultati organici."""
    with open(FIXTURES_DIR / "serper_search.json", encoding="utf-8") as f:
        return json.load(f)

