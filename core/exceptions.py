"""
Eccezioni custom per il Ricercatore di Mercato.
"""
from typing import Optional


class ResearchError(Exception):
    """Errore generico del motore di ricerca."""
    retryable: bool = False


class ValidationError(ResearchError):
    """Input non valido: unico errore fatale per un'esecuzione."""
    pass


class ConfigurationError(ResearchError):
    """Configurazione mancante o non valida (es. API key assente)."""
    pass


class SearchAPIError(ResearchError):
    """Risposta HTTP non-2xx dal provider di ricerca."""

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class TransientError(SearchAPIError):
    """Timeout, errore di rete, HTTP 5xx o 429: si può ritentare."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code, retryable=True)


class AuthError(SearchAPIError):
    """Credenziali rifiutate dal provider."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code, retryable=False)


class SchemaError(ResearchError):
    """La risposta del provider non rispetta lo schema atteso."""
    pass


class LLMError(ResearchError):
    """Errore del modello linguistico (chiamata fallita o output non strutturato)."""
    pass


def is_retryable(error: BaseException) -> bool:
    """
    Determina se un errore può essere ritentato.

    Args:
        error: Eccezione da classificare

    Returns:
        True solo per errori transitori
    """
    return isinstance(error, ResearchError) and error.retryable


def user_message(error: BaseException) -> str:
    """
    Messaggio leggibile per l'utente finale.

    Args:
        error: Eccezione da descrivere

    Returns:
        Messaggio in italiano
    """
    if isinstance(error, ValidationError):
        return f"Input non valido: {error}"
    if isinstance(error, ConfigurationError):
        return "Configurazione incompleta: verificare le variabili d'ambiente."
    if isinstance(error, AuthError):
        return "Chiave API del servizio di ricerca non valida."
    if isinstance(error, TransientError):
        return "Il servizio di ricerca non è al momento disponibile. Riprovare più tardi."
    if isinstance(error, SchemaError):
        return "Il servizio di ricerca ha restituito dati in un formato inatteso."
    if isinstance(error, LLMError):
        return "La generazione automatica del testo non è riuscita; sono stati usati i dati grezzi."
    if isinstance(error, ResearchError):
        return str(error)
    return "Errore imprevisto. Riprovare più tardi."
