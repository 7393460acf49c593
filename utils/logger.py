"""
Configurazione logging per il Ricercatore di Mercato.

Le ricerche girano su thread del pool: il nome del thread compare in
ogni riga così le chiamate parallele restano distinguibili nei log.
"""
import logging
import sys
from datetime import datetime
from pathlib import Path

from core.models import AgentMetrics

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)-12s | %(name)-28s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Librerie HTTP/SDK troppo verbose a livello INFO
NOISY_LOGGERS = ("urllib3", "requests", "httpx", "httpcore", "openai")


def setup_logging(
    level: str = "INFO",
    log_file: bool = True,
    log_dir: str = "logs",
    app_name: str = "ricercatore"
) -> logging.Logger:
    """
    Configura il logging per l'applicazione.

    La console usa stderr: stdout resta riservato all'output della CLI
    (ad esempio il JSON con --json).

    Args:
        level: Livello logging (DEBUG, INFO, WARNING, ERROR)
        log_file: Se True, scrive anche su file giornaliero
        log_dir: Directory per file di log
        app_name: Prefisso del file di log

    Returns:
        Root logger configurato
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(numeric_level)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_dir)
        try:
            log_path.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(
                log_path / f"{app_name}_{datetime.now():%Y%m%d}.log",
                encoding="utf-8",
            )
        except OSError as e:
            root_logger.warning(f"Could not create log file in {log_path}: {e}")
        else:
            file_handler.setFormatter(formatter)
            # Il file registra anche il dettaglio di cache e rate limiter
            file_handler.setLevel(logging.DEBUG)
            root_logger.setLevel(logging.DEBUG)
            root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def log_run_metrics(logger: logging.Logger, theme: str, metrics: AgentMetrics) -> None:
    """
    Riga riassuntiva di fine esecuzione.

    Args:
        logger: Logger del chiamante
        theme: Tema della ricerca
        metrics: Metriche finalizzate
    """
    logger.info(
        f"Research '{theme}' completed in {metrics.execution_time_ms:.0f}ms: "
        f"{metrics.api_calls_count} searches "
        f"({metrics.cache_hit_rate_pct:.1f}% cached), "
        f"{metrics.llm_calls_count} LLM calls, {metrics.tokens_used} tokens, "
        f"{len(metrics.errors)} non-fatal errors"
    )
    for error in metrics.errors:
        logger.debug(f"  [{error.kind}] {error.message}")
