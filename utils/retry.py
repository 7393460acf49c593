"""
Retry con exponential backoff.
"""
import functools
import time
import logging
import random
from typing import Type, Tuple, Callable, Any, Optional

logger = logging.getLogger(__name__)


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
) -> float:
    """
    Delay per il tentativo indicato: base * exponential_base^attempt, con tetto.

    Args:
        attempt: Indice del tentativo fallito (da 0)
        base_delay: Delay iniziale in secondi
        max_delay: Delay massimo in secondi
        exponential_base: Base per crescita esponenziale

    Returns:
        Delay in secondi
    """
    return min(base_delay * (exponential_base ** attempt), max_delay)


def retry_call(
    func: Callable[[], Any],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    should_retry: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
    jitter: bool = True,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """
    Esegue func ritentando gli errori recuperabili con exponential backoff.

    Gli errori per cui should_retry restituisce False vengono propagati
    subito, senza consumare tentativi.

    Args:
        func: Funzione senza argomenti da eseguire
        max_attempts: Numero massimo di tentativi
        base_delay: Delay iniziale in secondi
        max_delay: Delay massimo in secondi
        exponential_base: Base per crescita esponenziale
        exceptions: Tuple di eccezioni da catchare
        should_retry: Predicato sugli errori ritentabili (default: tutti)
        on_retry: Callback opzionale chiamato prima di ogni retry
        jitter: Se True aggiunge un 10-20% casuale al delay
        sleep: Funzione di attesa (sostituibile nei test)

    Returns:
        Il valore restituito da func

    Raises:
        L'ultima eccezione dopo max_attempts fallimenti
    """
    name = getattr(func, "__name__", "call")
    last_exception: Optional[Exception] = None

    for attempt in range(max(1, max_attempts)):
        try:
            return func()
        except exceptions as e:
            if should_retry is not None and not should_retry(e):
                raise
            last_exception = e

            if attempt < max_attempts - 1:
                delay = compute_delay(attempt, base_delay, max_delay, exponential_base)
                if jitter:
                    delay += delay * random.uniform(0.1, 0.2)

                logger.warning(
                    f"{name} failed (attempt {attempt + 1}/{max_attempts}): {e}. "
                    f"Retrying in {delay:.2f}s..."
                )

                if on_retry:
                    on_retry(e, attempt)

                sleep(delay)
            else:
                logger.error(f"{name} failed after {max_attempts} attempts: {e}")

    raise last_exception


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    should_retry: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
) -> Callable:
    """
    Decorator per retry con exponential backoff e jitter.

    Args:
        max_retries: Numero massimo di tentativi
        base_delay: Delay iniziale in secondi
        max_delay: Delay massimo in secondi
        exponential_base: Base per crescita esponenziale
        exceptions: Tuple di eccezioni da catchare
        should_retry: Predicato sugli errori ritentabili
        on_retry: Callback opzionale chiamato prima di ogni retry

    Returns:
        Decorator function
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            call = functools.wraps(func)(lambda: func(*args, **kwargs))
            return retry_call(
                call,
                max_attempts=max_retries,
                base_delay=base_delay,
                max_delay=max_delay,
                exponential_base=exponential_base,
                exceptions=exceptions,
                should_retry=should_retry,
                on_retry=on_retry,
            )

        return wrapper
    return decorator
