"""
HTTP Configuration Module - sessioni requests condivise.

Configura:
- Header JSON e User-Agent dell'applicazione
- Connection pooling dimensionato sul fan-out delle ricerche

I retry sono gestiti da utils.retry, non dall'adapter urllib3,
così ogni errore viene classificato una sola volta.
"""
import requests
from requests.adapters import HTTPAdapter
import logging

logger = logging.getLogger(__name__)

USER_AGENT = "ricercatore-mercato/1.0"

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "User-Agent": USER_AGENT,
}


def create_session(
    pool_connections: int = 10,
    pool_maxsize: int = 20,
) -> requests.Session:
    """
    Crea una Session requests con pool di connessioni e header di default.

    Args:
        pool_connections: Numero di pool per host
        pool_maxsize: Connessioni massime per pool

    Returns:
        requests.Session configurata
    """
    session = requests.Session()

    adapter = HTTPAdapter(
        max_retries=0,
        pool_connections=pool_connections,
        pool_maxsize=pool_maxsize,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update(DEFAULT_HEADERS)
    logger.debug(f"HTTP session created (pool_maxsize={pool_maxsize})")

    return session
