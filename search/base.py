"""
Classe base astratta per i client di ricerca.

Definisce l'interfaccia comune che tutti i provider devono implementare.
"""
from abc import ABC, abstractmethod
from time import sleep
from typing import Callable, Optional
import logging

from core.exceptions import is_retryable
from core.models import SearchQuery, SearchResponse
from utils.retry import retry_call


class BaseSearchClient(ABC):
    """
    Interfaccia astratta per i client di ricerca web.

    Pattern: Strategy + Template Method

    Le sottoclassi implementano search(); il retry con backoff
    esponenziale è comune a tutti i provider.
    """

    def __init__(
        self,
        name: str,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        retry_max_delay: float = 10.0,
        sleep_func: Callable[[float], None] = sleep,
    ):
        """
        Inizializza il client.

        Args:
            name: Nome identificativo del provider
            max_retries: Tentativi massimi di default per search_with_retry
            retry_base_delay: Delay iniziale del backoff in secondi
            retry_max_delay: Tetto del delay in secondi
            sleep_func: Funzione di attesa tra i tentativi
        """
        self.name = name
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self._sleep = sleep_func
        self.logger = logging.getLogger(f"search.{name}")

    @abstractmethod
    def search(self, query: SearchQuery) -> SearchResponse:
        """
        Esegue una singola query.

        Args:
            query: Query da eseguire

        Returns:
            SearchResponse con risultati, flag cached e tempo di ricerca
        """
        pass

    def search_with_retry(
        self,
        query: SearchQuery,
        max_attempts: Optional[int] = None
    ) -> SearchResponse:
        """
        Esegue search() ritentando solo gli errori transitori.

        Backoff: base * 2^tentativo, con tetto. Errori non ritentabili
        (4xx diversi da 429, schema, autenticazione) vengono propagati
        subito senza consumare tentativi.

        Args:
            query: Query da eseguire
            max_attempts: Tentativi massimi (default: max_retries del client)

        Returns:
            SearchResponse

        Raises:
            L'ultimo errore dopo max_attempts fallimenti transitori
        """
        attempts = max_attempts if max_attempts is not None else self.max_retries

        def attempt() -> SearchResponse:
            return self.search(query)

        attempt.__name__ = f"{self.name}.search"

        return retry_call(
            attempt,
            max_attempts=attempts,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            should_retry=is_retryable,
            jitter=False,
            sleep=self._sleep,
        )

    def health_check(self) -> bool:
        """
        Verifica se il servizio è raggiungibile.

        Returns:
            True se il servizio è disponibile
        """
        return True
