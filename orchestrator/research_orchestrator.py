"""
Research Orchestrator - coordinamento della ricerca di mercato.

Guida la sequenza di fasi pianificazione -> ricerca -> aggregazione ->
sintesi, esegue le ricerche in parallelo isolando i fallimenti delle
singole query e accumula le metriche dell'esecuzione.
"""
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import re

from aggregator.result_aggregator import ResultAggregator
from config import AppConfig, JAPAN_PROFILE, MarketProfile
from core.exceptions import LLMError, ValidationError
from core.models import (
    AgentMetrics,
    ErrorRecord,
    GlobalInsights,
    MarketInsights,
    PhaseMessage,
    QuerySet,
    ResearchOutcome,
    ResearchPhase,
    ResearchSummary,
    SearchResponse,
    SearchResult,
)
from llm.base import BaseLLMClient
from orchestrator.prompts import build_summary_prompt
from orchestrator.query_planner import QueryPlanner
from search.base import BaseSearchClient
from utils.logger import log_run_metrics
from utils.validators import validate_theme

logger = logging.getLogger(__name__)

# Type alias
ProgressCallback = Callable[[float, str], None]

# Transizioni ammesse della macchina a stati
TRANSITIONS: Dict[ResearchPhase, Tuple[ResearchPhase, ...]] = {
    ResearchPhase.START: (ResearchPhase.PLANNING, ResearchPhase.ERROR),
    ResearchPhase.PLANNING: (ResearchPhase.SEARCHING,),
    ResearchPhase.SEARCHING: (ResearchPhase.AGGREGATING,),
    ResearchPhase.AGGREGATING: (ResearchPhase.SUMMARIZING,),
    ResearchPhase.SUMMARIZING: (ResearchPhase.COMPLETE,),
    ResearchPhase.COMPLETE: (),
    ResearchPhase.ERROR: (),
}

SOURCES_PER_REGION = 10
FALLBACK_KEY_FINDINGS = [
    "Ricerca di mercato completata",
    "Per i dettagli consultare i singoli insight",
]

# "1. testo", "2) testo", "- testo", "• testo"
LIST_ITEM_PATTERN = re.compile(r'^\s*(?:\d+[.)、]|[-*•・])\s+(.+?)\s*$')
RECOMMENDATION_HEADER = re.compile(r'raccomandazion|recommend|推奨|提案', re.IGNORECASE)


@dataclass
class _Run:
    """Stato di una singola esecuzione."""
    metrics: AgentMetrics = field(default_factory=AgentMetrics)
    messages: List[PhaseMessage] = field(default_factory=list)
    phase: ResearchPhase = ResearchPhase.START
    progress_callback: Optional[ProgressCallback] = None
    started: float = field(default_factory=perf_counter)

    def elapsed_ms(self) -> float:
        return (perf_counter() - self.started) * 1000


class ResearchOrchestrator:
    """
    Orchestratore principale della ricerca di mercato.

    Responsabilità:
    - Validare l'input (unico percorso fatale)
    - Pianificare le query e lanciarle in parallelo
    - Isolare i fallimenti delle singole query (bulkhead)
    - Aggregare i risultati e produrre la sintesi finale
    - Accumulare le metriche dell'esecuzione
    """

    def __init__(
        self,
        search_client: BaseSearchClient,
        llm_client: Optional[BaseLLMClient] = None,
        planner: Optional[QueryPlanner] = None,
        aggregator: Optional[ResultAggregator] = None,
        profile: MarketProfile = JAPAN_PROFILE,
        max_workers: int = 8,
        max_attempts: Optional[int] = None,
        settings: Optional[AppConfig] = None,
    ):
        """
        Inizializza l'orchestratore.

        Args:
            search_client: Client di ricerca (cache, rate limit e retry inclusi)
            llm_client: Client LLM per pianificazione e sintesi (opzionale)
            planner: Query planner (default: basato su llm_client)
            aggregator: Aggregatore dei risultati
            profile: Profilo del mercato domestico
            max_workers: Numero massimo di thread per ricerche parallele
            max_attempts: Tentativi per query (default: quelli del client)
            settings: Configurazione per le soglie di performance
        """
        self.search_client = search_client
        self.llm_client = llm_client
        self.settings = settings or AppConfig()
        self.planner = planner or QueryPlanner(
            llm_client=llm_client,
            profile=profile,
            result_count=self.settings.result_count,
        )
        self.aggregator = aggregator or ResultAggregator(profile=profile)
        self.max_workers = max_workers
        self.max_attempts = max_attempts

    @classmethod
    def from_config(cls, settings: AppConfig, use_llm: bool = True) -> "ResearchOrchestrator":
        """
        Costruisce l'orchestratore con i client reali.

        Args:
            settings: Configurazione applicazione
            use_llm: Se False usa solo i fallback deterministici

        Returns:
            ResearchOrchestrator pronto all'uso

        Raises:
            ConfigurationError: se manca l'API key di ricerca
        """
        from llm.openai_client import OpenAIChatClient
        from search.serper_client import SerperSearchClient

        search_client = SerperSearchClient(settings=settings.search)
        llm_client = None
        if use_llm and settings.llm.enabled:
            llm_client = OpenAIChatClient(settings=settings.llm)
        elif use_llm:
            logger.warning("OPENAI_API_KEY not set: running with deterministic fallbacks only")

        return cls(
            search_client=search_client,
            llm_client=llm_client,
            max_workers=settings.max_workers,
            settings=settings,
        )

    def run(
        self,
        theme: Any,
        progress_callback: Optional[ProgressCallback] = None
    ) -> ResearchOutcome:
        """
        Esegue la ricerca completa per un tema.

        Args:
            theme: Tema di ricerca
            progress_callback: Callback per progress bar (0.0-1.0, messaggio)

        Returns:
            ResearchOutcome: success=False solo per input non valido
        """
        run = _Run(progress_callback=progress_callback)

        try:
            theme = validate_theme(theme)
        except ValidationError as e:
            logger.error(f"Invalid research input: {e}")
            run.metrics.record_error(ErrorRecord.from_exception(e))
            self._advance(run, ResearchPhase.ERROR, f"Input non valido: {e}", 1.0)
            run.metrics.execution_time_ms = run.elapsed_ms()
            return ResearchOutcome(
                success=False,
                metrics=run.metrics,
                error=str(e),
                messages=run.messages,
            )

        logger.info(f"Starting research: '{theme}'")

        # Pianificazione: il planner ripiega da solo sui template
        self._advance(run, ResearchPhase.PLANNING, "Generazione delle query di ricerca...", 0.05)
        query_set = self.planner.plan(theme, run.metrics)

        self._advance(
            run,
            ResearchPhase.SEARCHING,
            f"Ricerca web in corso (domestiche: {len(query_set.domestic_queries)}, "
            f"globali: {len(query_set.global_queries)})...",
            0.15,
            {"queries": query_set.to_dict()},
        )
        domestic_results, global_results = self._execute_searches(query_set, run)

        self._advance(
            run,
            ResearchPhase.AGGREGATING,
            f"Analisi dei risultati (domestici: {len(domestic_results)}, "
            f"globali: {len(global_results)})...",
            0.75,
        )
        all_results = domestic_results + global_results
        key_insights = self.aggregator.extract_insights(all_results)
        applicability = self.aggregator.analyze_applicability(global_results)
        insights, global_insights = self.aggregator.group_insights(key_insights, applicability)
        regional = self.aggregator.categorize_by_region(all_results)

        self._advance(run, ResearchPhase.SUMMARIZING, "Generazione della sintesi...", 0.85)
        narrative, fallback_used = self._summarize(theme, insights, global_insights, run)
        if fallback_used:
            key_findings = list(FALLBACK_KEY_FINDINGS)
            recommendations: List[str] = []
        else:
            key_findings = extract_key_findings(narrative)
            recommendations = extract_recommendations(narrative)

        run.metrics.execution_time_ms = run.elapsed_ms()
        summary = ResearchSummary(
            theme=theme,
            queries=query_set,
            summary=narrative,
            insights=insights,
            global_insights=global_insights,
            key_insights=key_insights,
            applicability=applicability,
            regional_breakdown=regional.counts(),
            domestic_sources=self.aggregator.collect_sources(domestic_results, SOURCES_PER_REGION),
            global_sources=self.aggregator.collect_sources(global_results, SOURCES_PER_REGION),
            metrics=run.metrics,
            key_findings=key_findings,
            recommendations=recommendations,
            fallback_used=fallback_used,
        )

        self._advance(
            run,
            ResearchPhase.COMPLETE,
            "Ricerca completata",
            1.0,
            {
                "execution_time_ms": round(run.metrics.execution_time_ms),
                "tokens_used": run.metrics.tokens_used,
                "errors": len(run.metrics.errors),
            },
        )
        log_run_metrics(logger, theme, run.metrics)
        self._check_thresholds(run.metrics)

        return ResearchOutcome(
            success=True,
            metrics=run.metrics,
            summary=summary,
            messages=run.messages,
        )

    def _execute_searches(
        self,
        query_set: QuerySet,
        run: _Run
    ) -> Tuple[List[SearchResult], List[SearchResult]]:
        """
        Lancia tutte le query in parallelo.

        Ogni fallimento viene sostituito da un risultato vuoto più un
        ErrorRecord, senza cancellare le altre query. I risultati sono
        ricomposti per indice di query: l'ordine di completamento non
        influenza l'output.

        Returns:
            Tupla (risultati domestici, risultati globali), deduplicati
        """
        queries = query_set.all_queries()
        responses: List[SearchResponse] = [SearchResponse() for _ in queries]
        if not queries:
            return [], []

        workers = max(1, min(self.max_workers, len(queries)))
        completed = 0

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self.search_client.search_with_retry, query, self.max_attempts): index
                for index, query in enumerate(queries)
            }

            for future in as_completed(futures):
                index = futures[future]
                query = queries[index]
                try:
                    responses[index] = future.result()
                except Exception as e:
                    logger.error(f"Search failed for '{query.text}': {e}")
                    run.metrics.record_error(
                        ErrorRecord.from_exception(e, f"Search failed for '{query.text}'")
                    )
                completed += 1
                self._update_progress(
                    run.progress_callback,
                    0.15 + 0.6 * completed / len(queries),
                    f"Ricerche completate: {completed}/{len(queries)}",
                )

        cached = sum(1 for r in responses if r.cached)
        run.metrics.api_calls_count += len(queries)
        run.metrics.cache_hit_rate_pct = cached / len(queries) * 100

        split = len(query_set.domestic_queries)
        domestic = [result for r in responses[:split] for result in r.results]
        global_results = [result for r in responses[split:] for result in r.results]

        logger.info(
            f"Searches complete: {len(queries)} queries, {cached} cached, "
            f"{len(domestic)} domestic and {len(global_results)} global results"
        )
        return (
            self.aggregator.remove_duplicates(domestic),
            self.aggregator.remove_duplicates(global_results),
        )

    def _summarize(
        self,
        theme: str,
        insights: MarketInsights,
        global_insights: GlobalInsights,
        run: _Run
    ) -> Tuple[str, bool]:
        """
        Chiede la sintesi narrativa al modello.

        Returns:
            Tupla (narrativa, fallback usato)
        """
        if self.llm_client is None:
            return build_fallback_summary(theme, insights, global_insights), True

        try:
            system, prompt = build_summary_prompt(theme, insights, global_insights)
            response = self.llm_client.complete(prompt, system=system)
            run.metrics.record_llm_call(response.total_tokens)
            narrative = response.text.strip()
            if not narrative:
                raise LLMError("LLM returned an empty summary")
            return narrative, False
        except Exception as e:
            logger.warning(f"Summary generation failed, using fallback: {e}")
            run.metrics.record_error(ErrorRecord(
                kind=LLMError.__name__,
                message=f"Summary generation failed: {e}",
                retryable=False,
            ))
            return build_fallback_summary(theme, insights, global_insights), True

    def _advance(
        self,
        run: _Run,
        phase: ResearchPhase,
        message: str,
        progress: float,
        data: Optional[Dict[str, Any]] = None
    ) -> None:
        """Esegue una transizione di fase e notifica l'avanzamento."""
        if phase not in TRANSITIONS[run.phase]:
            raise RuntimeError(f"Illegal phase transition: {run.phase.value} -> {phase.value}")
        logger.debug(f"Phase {run.phase.value} -> {phase.value}")
        run.phase = phase
        run.messages.append(PhaseMessage(phase=phase, message=message, data=data or {}))
        self._update_progress(run.progress_callback, progress, message)

    def _check_thresholds(self, metrics: AgentMetrics) -> None:
        """Segnala nei log le esecuzioni oltre le soglie di performance."""
        if metrics.execution_time_ms > self.settings.max_execution_ms:
            logger.warning(
                f"Research took {metrics.execution_time_ms:.0f}ms "
                f"(threshold {self.settings.max_execution_ms}ms)"
            )
        if metrics.tokens_used > self.settings.max_total_tokens:
            logger.warning(
                f"Research used {metrics.tokens_used} tokens "
                f"(threshold {self.settings.max_total_tokens})"
            )
        if metrics.api_calls_count and metrics.cache_hit_rate_pct < self.settings.min_cache_hit_rate:
            logger.info(
                f"Cache hit rate {metrics.cache_hit_rate_pct:.1f}% below "
                f"{self.settings.min_cache_hit_rate:.0f}%"
            )

    def _update_progress(
        self,
        callback: Optional[ProgressCallback],
        progress: float,
        message: str
    ) -> None:
        """Helper per aggiornare progress callback in modo sicuro."""
        if callback:
            try:
                callback(min(1.0, max(0.0, progress)), message)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")


def build_fallback_summary(
    theme: str,
    insights: MarketInsights,
    global_insights: GlobalInsights
) -> str:
    """
    Sintesi deterministica costruita dai campi degli insight.

    Args:
        theme: Tema della ricerca
        insights: Insight sul mercato domestico
        global_insights: Insight sui casi esteri

    Returns:
        Testo della sintesi (mai vuoto)
    """
    parts = [f"È stata condotta una ricerca di mercato sul tema «{theme}»."]

    if insights.market_size:
        parts.append(f"Dimensione del mercato: {insights.market_size}")
    if insights.competitors:
        parts.append(f"Principali operatori: {'; '.join(insights.competitors[:3])}")
    if insights.trends:
        parts.append(f"Trend principale: {insights.trends[0]}")
    if global_insights.applicability:
        parts.append(f"Analisi dei casi esteri: {global_insights.applicability}")

    return "\n\n".join(parts)


def extract_key_findings(narrative: str, limit: int = 5) -> List[str]:
    """
    Voci numerate o puntate della sintesi, al massimo limit.

    La raccolta si ferma all'intestazione delle raccomandazioni: le voci
    che la seguono appartengono a extract_recommendations.
    """
    findings = []
    for line in narrative.splitlines():
        match = LIST_ITEM_PATTERN.match(line)
        if match:
            findings.append(match.group(1))
        elif RECOMMENDATION_HEADER.search(line):
            break
    return findings[:limit]


def extract_recommendations(narrative: str, limit: int = 3) -> List[str]:
    """
    Raccomandazioni della sintesi.

    Cerca la riga di intestazione (es. "Raccomandazioni:") e raccoglie
    il testo dopo i due punti e le voci di elenco che seguono.
    """
    lines = narrative.splitlines()
    for index, line in enumerate(lines):
        if not RECOMMENDATION_HEADER.search(line):
            continue

        items: List[str] = []
        _, sep, inline = line.partition(":")
        if not sep:
            _, sep, inline = line.partition("：")
        if sep:
            items.extend(part.strip() for part in re.split(r'[;。]', inline) if part.strip())

        for follow in lines[index + 1:]:
            match = LIST_ITEM_PATTERN.match(follow)
            if match:
                items.append(match.group(1))
            elif follow.strip():
                break
        return items[:limit]
    return []
