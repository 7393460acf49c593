"""
Rate Limiter globale per le chiamate al provider di ricerca.

Token bucket a finestra fissa, thread-safe per uso con ThreadPoolExecutor.
"""
from time import monotonic
from threading import Condition
from typing import Callable, Optional
import logging

logger = logging.getLogger(__name__)

# Intervallo massimo tra due controlli di un chiamante in attesa
MAX_WAIT_SLICE = 0.05


class RateLimiter:
    """
    Token bucket con ricarica a finestra fissa.

    All'inizio di ogni finestra di `interval` secondi i token tornano
    a `capacity`. acquire() blocca finché un token è disponibile e lo
    consuma: check e decremento avvengono sotto lo stesso lock, quindi
    i token non scendono mai sotto zero.

    I chiamanti bloccati vengono serviti in ordine di arrivo (ticket),
    così nessuno resta in attesa indefinitamente.
    """

    def __init__(
        self,
        capacity: int = 100,
        interval: float = 60.0,
        clock: Callable[[], float] = monotonic,
    ):
        """
        Inizializza il rate limiter.

        Args:
            capacity: Token disponibili per finestra
            interval: Durata della finestra in secondi
            clock: Sorgente del tempo (sostituibile nei test)
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if interval <= 0:
            raise ValueError("interval must be > 0")

        self.capacity = capacity
        self.interval = interval
        self._clock = clock
        self._cond = Condition()
        self._tokens = capacity
        self._window_start = clock()
        self._next_ticket = 0
        self._now_serving = 0

    def _refill(self) -> None:
        """Ricarica i token se è iniziata una nuova finestra. Richiede il lock."""
        now = self._clock()
        elapsed = now - self._window_start
        if elapsed >= self.interval:
            windows = int(elapsed // self.interval)
            self._window_start += windows * self.interval
            self._tokens = self.capacity

    def _time_to_next_window(self) -> float:
        return max(0.0, self._window_start + self.interval - self._clock())

    def acquire(self) -> None:
        """
        Attende un token e lo consuma.

        Non fallisce mai: blocca finché la finestra successiva
        non rende disponibile un token.
        """
        with self._cond:
            ticket = self._next_ticket
            self._next_ticket += 1
            waited = False

            while True:
                if ticket == self._now_serving:
                    self._refill()
                    if self._tokens > 0:
                        self._tokens -= 1
                        self._now_serving += 1
                        self._cond.notify_all()
                        if waited:
                            logger.debug(f"Rate limiter: ticket {ticket} released")
                        return
                    timeout = min(self._time_to_next_window(), MAX_WAIT_SLICE)
                    if not waited:
                        logger.debug(
                            f"Rate limiting: bucket empty, waiting "
                            f"{self._time_to_next_window():.2f}s for next window"
                        )
                else:
                    timeout = MAX_WAIT_SLICE
                waited = True
                self._cond.wait(timeout=timeout)

    def try_acquire(self) -> bool:
        """
        Consuma un token solo se disponibile subito e nessuno è in coda.

        Returns:
            True se il token è stato consumato
        """
        with self._cond:
            if self._next_ticket != self._now_serving:
                return False
            self._refill()
            if self._tokens > 0:
                self._tokens -= 1
                return True
            return False

    @property
    def available_tokens(self) -> int:
        """Token disponibili nella finestra corrente."""
        with self._cond:
            self._refill()
            return self._tokens

    def reset(self) -> None:
        """Riporta il bucket pieno e apre una nuova finestra."""
        with self._cond:
            self._tokens = self.capacity
            self._window_start = self._clock()
            self._cond.notify_all()


# Singleton instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter(capacity: int = 100, interval: float = 60.0) -> RateLimiter:
    """
    Restituisce l'istanza singleton del rate limiter.

    I parametri sono usati solo alla prima creazione.

    Returns:
        RateLimiter singleton
    """
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter(capacity=capacity, interval=interval)
    return _rate_limiter
