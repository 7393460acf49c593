"""
Ricercatore di Mercato v1.0

Interfaccia a riga di comando per la ricerca di mercato: dato un tema,
pianifica le query, interroga il motore di ricerca web per il mercato
domestico e per i casi esteri, e stampa la sintesi con le metriche.

Uso:
    python app.py "AI nel settore immobiliare"
    python app.py "AI nel settore immobiliare" --json
    python app.py "AI nel settore immobiliare" --no-llm
"""
import argparse
import json
import logging
import sys
from pathlib import Path

# Aggiungi la directory corrente al path per gli import
sys.path.insert(0, str(Path(__file__).parent))

from config import config
from core.exceptions import ConfigurationError, user_message
from core.models import ResearchOutcome
from orchestrator.research_orchestrator import ResearchOrchestrator
from utils.logger import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ricercatore",
        description=f"{config.app_name} v{config.version}",
    )
    parser.add_argument("theme", help="Tema della ricerca di mercato")
    parser.add_argument("--json", action="store_true", help="Stampa il risultato completo in JSON")
    parser.add_argument("--no-llm", action="store_true", help="Usa solo query e sintesi a template")
    parser.add_argument("--log-level", default=config.log_level, help="Livello di logging")
    return parser.parse_args(argv)


def print_progress(progress: float, message: str) -> None:
    print(f"[{progress:>4.0%}] {message}", file=sys.stderr)


def format_outcome(outcome: ResearchOutcome) -> str:
    """Rende l'esito leggibile a terminale."""
    if not outcome.success or outcome.summary is None:
        return f"Ricerca non eseguita: {outcome.error}"

    summary = outcome.summary
    metrics = outcome.metrics
    lines = [
        f"=== {summary.theme} ===",
        "",
        summary.summary,
        "",
    ]

    if summary.key_findings:
        lines.append("Risultati principali:")
        lines.extend(f"  - {finding}" for finding in summary.key_findings)
        lines.append("")

    if summary.recommendations:
        lines.append("Raccomandazioni:")
        lines.extend(f"  - {rec}" for rec in summary.recommendations)
        lines.append("")

    lines.append(
        f"Fonti: {summary.regional_breakdown['domestic']} domestiche, "
        f"{summary.regional_breakdown['global']} estere"
    )
    lines.append(
        f"Metriche: {metrics.execution_time_ms:.0f} ms | "
        f"{metrics.api_calls_count} ricerche | "
        f"{metrics.llm_calls_count} chiamate LLM ({metrics.tokens_used} token) | "
        f"cache {metrics.cache_hit_rate_pct:.1f}%"
    )
    if metrics.errors:
        lines.append(f"Errori non fatali: {len(metrics.errors)}")
        lines.extend(f"  - [{e.kind}] {e.message}" for e in metrics.errors)

    return "\n".join(lines)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(level=args.log_level, log_file=config.log_to_file)

    try:
        orchestrator = ResearchOrchestrator.from_config(config, use_llm=not args.no_llm)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(user_message(e), file=sys.stderr)
        return 1

    outcome = orchestrator.run(args.theme, progress_callback=None if args.json else print_progress)

    if args.json:
        if outcome.summary is not None:
            payload = outcome.summary.to_dict()
        else:
            payload = {"error": outcome.error, "metrics": outcome.metrics.to_dict()}
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(format_outcome(outcome))

    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(main())
