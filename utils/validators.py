"""
Funzioni di validazione e normalizzazione.
"""
import re
from datetime import datetime, timedelta
from typing import Any, Optional

from config import THEME_MAX_LENGTH
from core.exceptions import ValidationError


# "3 days ago", "1 hour ago", "2 weeks ago"
RELATIVE_DATE_PATTERN = re.compile(
    r'^(\d+)\s+(minute|min|hour|day|week|month|year)s?\s+ago$', re.IGNORECASE
)

# Giorni per unità di tempo nelle date relative
RELATIVE_UNITS = {
    "minute": 1 / 1440,
    "min": 1 / 1440,
    "hour": 1 / 24,
    "day": 1,
    "week": 7,
    "month": 30,
    "year": 365,
}

ABSOLUTE_DATE_FORMATS = (
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%Y/%m/%d",
    "%Y年%m月%d日",
)


def validate_theme(theme: Any) -> str:
    """
    Valida il tema di ricerca.

    Args:
        theme: Tema inserito dall'utente

    Returns:
        Tema normalizzato (senza spazi iniziali/finali)

    Raises:
        ValidationError: se il tema è assente, vuoto o troppo lungo
    """
    if theme is None or not isinstance(theme, str):
        raise ValidationError("Il tema è obbligatorio")
    normalized = theme.strip()
    if not normalized:
        raise ValidationError("Il tema è obbligatorio")
    if len(normalized) > THEME_MAX_LENGTH:
        raise ValidationError(f"Il tema deve avere al massimo {THEME_MAX_LENGTH} caratteri")
    return normalized


def parse_published_date(value: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Converte la data di pubblicazione del provider in datetime.

    Supporta date relative ("3 days ago"), timestamp ISO 8601 (anche con
    "Z" o offset UTC) e i formati assoluti più comuni.

    Args:
        value: Data come restituita dal provider
        now: Istante di riferimento per le date relative

    Returns:
        datetime o None se il formato non è riconosciuto
    """
    if not value:
        return None
    text = value.strip()
    now = now or datetime.now()

    match = RELATIVE_DATE_PATTERN.match(text)
    if match:
        amount = int(match.group(1))
        days = RELATIVE_UNITS[match.group(2).lower()]
        return now - timedelta(days=amount * days)

    # ISO 8601, anche con "Z" o offset: convertito in ora locale naive come now
    try:
        published = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    else:
        if published.tzinfo is not None:
            published = published.astimezone().replace(tzinfo=None)
        return published

    for fmt in ABSOLUTE_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def age_in_days(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """
    Età in giorni di una data di pubblicazione.

    Args:
        value: Data come restituita dal provider
        now: Istante di riferimento

    Returns:
        Giorni trascorsi o None se la data non è interpretabile
    """
    now = now or datetime.now()
    published = parse_published_date(value, now)
    if published is None:
        return None
    return (now - published).total_seconds() / 86400
