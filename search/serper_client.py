"""
Client per Serper (Google Search API).

Ogni ricerca segue il percorso: cache -> rate limiter -> POST HTTP
-> validazione schema -> normalizzazione -> cache.
"""
from time import perf_counter, sleep
from typing import Callable, List, Optional
import logging

import requests
from pydantic import ValidationError as PydanticValidationError

from config import PLACEHOLDER_API_KEYS, SearchConfig
from core.exceptions import (
    AuthError,
    ConfigurationError,
    SchemaError,
    SearchAPIError,
    TransientError,
)
from core.models import Region, SearchQuery, SearchResponse, SearchResult
from search.base import BaseSearchClient
from search.cache import SearchCache, get_search_cache
from search.rate_limiter import RateLimiter, get_rate_limiter
from search.schemas import SerperResponse
from utils.http_config import create_session

logger = logging.getLogger(__name__)


class SerperSearchClient(BaseSearchClient):
    """
    Client di ricerca per google.serper.dev.

    Cache e rate limiter sono condivisi a livello di processo
    (singleton) salvo diversa iniezione, così tutte le ricerche
    concorrenti rispettano lo stesso budget di chiamate.
    """

    def __init__(
        self,
        settings: Optional[SearchConfig] = None,
        api_key: Optional[str] = None,
        cache: Optional[SearchCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
        sleep_func: Callable[[float], None] = sleep,
    ):
        """
        Inizializza il client Serper.

        Args:
            settings: Configurazione di ricerca (default: da variabili d'ambiente)
            api_key: API key esplicita (ha priorità su settings)
            cache: Cache da usare (default: singleton di processo)
            rate_limiter: Rate limiter da usare (default: singleton di processo)
            session: Session requests (default: session con pool)
            sleep_func: Funzione di attesa tra i retry

        Raises:
            ConfigurationError: se l'API key è assente o segnaposto
        """
        settings = settings or SearchConfig()
        super().__init__(
            name="serper",
            max_retries=settings.max_retries,
            retry_base_delay=settings.retry_base_delay,
            retry_max_delay=settings.retry_max_delay,
            sleep_func=sleep_func,
        )

        self.api_key = (api_key if api_key is not None else settings.api_key or "").strip()
        if self.api_key.lower() in PLACEHOLDER_API_KEYS:
            raise ConfigurationError(
                "A valid Serper API key is required: set SERPER_API_KEY"
            )

        self.base_url = settings.base_url
        self.timeout = settings.timeout
        self.cache = cache if cache is not None else get_search_cache(
            ttl_seconds=settings.cache_ttl,
            max_entries=settings.cache_max_entries,
        )
        self.rate_limiter = rate_limiter if rate_limiter is not None else get_rate_limiter(
            capacity=settings.rate_limit,
            interval=settings.rate_window,
        )
        self.session = session if session is not None else create_session()

    def search(self, query: SearchQuery) -> SearchResponse:
        """
        Esegue una query con cache e rate limiting.

        Un timeout restituisce un risultato vuoto invece di un errore,
        così il batch degrada senza bloccarsi.

        Args:
            query: Query da eseguire

        Returns:
            SearchResponse (cached=True se servita dalla cache)

        Raises:
            TransientError: errore di rete, HTTP 5xx o 429
            AuthError: HTTP 401/403
            SearchAPIError: altri HTTP 4xx
            SchemaError: risposta non conforme allo schema
        """
        key = query.cache_key
        cached = self.cache.get(key)
        if cached is not None:
            self.logger.debug(f"Cache hit: '{query.text}'")
            return SearchResponse(
                results=cached,
                cached=True,
                search_time_ms=0.0,
                total_results=len(cached),
            )

        self.rate_limiter.acquire()

        started = perf_counter()
        try:
            response = self.session.post(
                self.base_url,
                json=query.to_payload(),
                headers={"X-API-KEY": self.api_key},
                timeout=self.timeout,
            )
        except requests.Timeout:
            self.logger.warning(f"Search timeout after {self.timeout}s for query: '{query.text}'")
            return SearchResponse(
                results=[],
                cached=False,
                search_time_ms=self.timeout * 1000,
                total_results=0,
            )
        except requests.RequestException as e:
            raise TransientError(f"Network error for query '{query.text}': {e}") from e

        elapsed_ms = (perf_counter() - started) * 1000
        self._raise_for_status(response)

        parsed = self._parse_response(response)
        results = self._convert_results(parsed)
        self.cache.put(key, results)

        total = len(results)
        if parsed.search_information and parsed.search_information.total_results is not None:
            total = parsed.search_information.total_results

        self.logger.info(f"'{query.text}': {len(results)} results in {elapsed_ms:.0f}ms")
        return SearchResponse(
            results=results,
            cached=False,
            search_time_ms=elapsed_ms,
            total_results=total,
        )

    def validate_api_key(self) -> bool:
        """
        Verifica l'API key con una richiesta di prova.

        Returns:
            False solo se il provider rifiuta le credenziali
        """
        probe = SearchQuery(
            text="test",
            region=Region.GLOBAL,
            geo_code="us",
            lang_code="en",
            result_count=1,
        )
        try:
            self.search(probe)
        except AuthError:
            return False
        except (SearchAPIError, SchemaError) as e:
            # Altri errori non indicano una chiave non valida
            self.logger.warning(f"API key probe inconclusive: {e}")
        return True

    def health_check(self) -> bool:
        return self.validate_api_key()

    def clear_cache(self) -> None:
        """Svuota la cache condivisa."""
        self.cache.clear()

    def _raise_for_status(self, response: requests.Response) -> None:
        """
        Mappa gli status non-2xx sulla tassonomia di errori.

        Args:
            response: Risposta HTTP
        """
        status = response.status_code
        if 200 <= status < 300:
            return

        message = f"Serper API error: {status} {getattr(response, 'reason', '') or ''}".strip()
        if status in (401, 403):
            raise AuthError(message, status_code=status)
        if status == 429 or status >= 500:
            raise TransientError(message, status_code=status)
        raise SearchAPIError(message, status_code=status, retryable=False)

    def _parse_response(self, response: requests.Response) -> SerperResponse:
        """
        Valida il corpo della risposta contro lo schema atteso.

        Raises:
            SchemaError: JSON non valido o struttura inattesa
        """
        try:
            data = response.json()
        except ValueError as e:
            raise SchemaError(f"Serper returned a non-JSON body: {e}") from e

        try:
            return SerperResponse.model_validate(data)
        except PydanticValidationError as e:
            raise SchemaError(
                f"Serper response does not match the expected schema: {e.error_count()} error(s)"
            ) from e

    def _convert_results(self, data: SerperResponse) -> List[SearchResult]:
        """Risultati organici seguiti dalle notizie, nell'ordine ricevuto."""
        results: List[SearchResult] = []

        for item in data.organic or []:
            results.append(SearchResult(
                title=item.title,
                link=item.link,
                snippet=item.snippet,
                position=item.position,
            ))

        for item in data.news or []:
            results.append(SearchResult(
                title=item.title,
                link=item.link,
                snippet=item.snippet,
                published_date=item.date,
            ))

        return results
