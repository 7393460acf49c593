"""
Modelli dati per il Ricercatore di Mercato.

Questo modulo definisce tutti i dataclass utilizzati nel sistema:
- SearchQuery / QuerySet: query pianificate per un tema
- SearchResult / SearchResponse: risultati normalizzati del provider
- Insight: informazione estratta e pesata per rilevanza
- AgentMetrics / ErrorRecord: metriche di una singola esecuzione
- ResearchSummary: output consegnato agli agenti a valle
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Any
from datetime import datetime
from enum import Enum


class Region(Enum):
    """Ambito geografico di una query."""
    DOMESTIC = "domestic"
    GLOBAL = "global"


class InsightType(Enum):
    """Categoria di un insight."""
    MARKET = "market"
    COMPETITOR = "competitor"
    TREND = "trend"
    REGULATION = "regulation"
    NEED = "need"
    INNOVATION = "innovation"


class ResearchPhase(Enum):
    """Fasi della macchina a stati dell'orchestratore."""
    START = "start"
    PLANNING = "planning"
    SEARCHING = "searching"
    AGGREGATING = "aggregating"
    SUMMARIZING = "summarizing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class SearchQuery:
    """
    Singola query di ricerca.

    Immutabile una volta pianificata; la chiave di cache dipende
    solo dai parametri che influenzano la risposta del provider.
    """
    text: str
    region: Region
    geo_code: str
    lang_code: str
    result_count: int = 10
    result_type: str = "search"
    purpose: Optional[str] = None

    @property
    def cache_key(self) -> str:
        """Chiave deterministica: stessa query logica, stessa chiave."""
        return "|".join([
            self.text,
            self.geo_code,
            self.lang_code,
            str(self.result_count),
            self.result_type,
        ])

    def to_payload(self) -> Dict[str, Any]:
        """Corpo della richiesta per il provider."""
        return {
            "q": self.text,
            "gl": self.geo_code,
            "hl": self.lang_code,
            "num": self.result_count,
            "type": self.result_type,
        }


@dataclass
class QuerySet:
    """Insieme di query per un tema: 5 domestiche e 3 globali."""
    domestic_queries: List[SearchQuery]
    global_queries: List[SearchQuery]
    source: str = "llm"  # "llm" oppure "fallback"
    generated_at: datetime = field(default_factory=datetime.now)

    def all_queries(self) -> List[SearchQuery]:
        """Query domestiche seguite da quelle globali."""
        return list(self.domestic_queries) + list(self.global_queries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domestic": [{"query": q.text, "purpose": q.purpose} for q in self.domestic_queries],
            "global": [{"query": q.text, "purpose": q.purpose} for q in self.global_queries],
            "source": self.source,
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass(frozen=True)
class SearchResult:
    """
    Risultato normalizzato proveniente dal provider.

    Il link è l'identità canonica del risultato.
    """
    title: str
    link: str
    snippet: str = ""
    position: Optional[int] = None
    published_date: Optional[str] = None

    @property
    def text(self) -> str:
        """Titolo e snippet, usati per la classificazione."""
        return f"{self.title} {self.snippet}"


@dataclass
class SearchResponse:
    """Esito di una singola ricerca."""
    results: List[SearchResult] = field(default_factory=list)
    cached: bool = False
    search_time_ms: float = 0.0
    total_results: int = 0


@dataclass
class CacheEntry:
    """Voce della cache: valida finché now - stored_at < ttl."""
    key: str
    results: List[SearchResult]
    stored_at: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.stored_at < self.ttl


@dataclass
class Insight:
    """Informazione estratta da un risultato, con punteggio in [0, 1]."""
    type: InsightType
    content: str
    source_link: str
    relevance_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "content": self.content,
            "source": self.source_link,
            "relevance": round(self.relevance_score, 3),
        }


@dataclass(frozen=True)
class ErrorRecord:
    """Errore registrato durante un'esecuzione. Non viene mai modificato."""
    kind: str
    message: str
    retryable: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_exception(cls, error: BaseException, context: str = "") -> "ErrorRecord":
        message = f"{context}: {error}" if context else str(error)
        return cls(
            kind=type(error).__name__,
            message=message,
            retryable=bool(getattr(error, "retryable", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind,
            "message": self.message,
            "retryable": self.retryable,
        }


@dataclass
class AgentMetrics:
    """
    Metriche di una singola esecuzione.

    Aggiornate in modo additivo dall'orchestratore e finalizzate
    al termine dell'esecuzione.
    """
    execution_time_ms: float = 0.0
    tokens_used: int = 0
    api_calls_count: int = 0
    llm_calls_count: int = 0
    cache_hit_rate_pct: float = 0.0
    errors: List[ErrorRecord] = field(default_factory=list)

    def record_error(self, record: ErrorRecord) -> None:
        self.errors.append(record)

    def record_llm_call(self, tokens: int) -> None:
        self.llm_calls_count += 1
        self.tokens_used += tokens

    def to_dict(self) -> Dict[str, Any]:
        return {
            "execution_time_ms": round(self.execution_time_ms, 1),
            "tokens_used": self.tokens_used,
            "api_calls_count": self.api_calls_count,
            "llm_calls_count": self.llm_calls_count,
            "cache_hit_rate_pct": self.cache_hit_rate_pct,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class CategorizedResults:
    """Risultati divisi per regione tramite euristica su dominio e script."""
    domestic: List[SearchResult] = field(default_factory=list)
    global_results: List[SearchResult] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {"domestic": len(self.domestic), "global": len(self.global_results)}


@dataclass
class ApplicabilityAnalysis:
    """Applicabilità dei casi esteri al mercato domestico."""
    applicable: bool
    reasoning: str
    adaptations: List[str] = field(default_factory=list)
    challenges: List[str] = field(default_factory=list)
    opportunities: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applicable": self.applicable,
            "reasoning": self.reasoning,
            "adaptations": self.adaptations,
            "challenges": self.challenges,
            "opportunities": self.opportunities,
        }


@dataclass
class MarketInsights:
    """Insight sul mercato domestico, raggruppati per categoria."""
    market_size: Optional[str] = None
    competitors: List[str] = field(default_factory=list)
    trends: List[str] = field(default_factory=list)
    regulations: List[str] = field(default_factory=list)
    customer_needs: List[str] = field(default_factory=list)


@dataclass
class GlobalInsights:
    """Insight sui casi esteri."""
    innovations: List[str] = field(default_factory=list)
    technologies: List[str] = field(default_factory=list)
    best_practices: List[str] = field(default_factory=list)
    applicability: str = ""


@dataclass
class ResearchSummary:
    """
    Output del motore di ricerca per gli agenti a valle.

    Contiene la narrativa, gli insight categorizzati, le fonti
    (max 10 per regione) e le metriche dell'esecuzione.
    """
    theme: str
    queries: QuerySet
    summary: str
    insights: MarketInsights
    global_insights: GlobalInsights
    key_insights: List[Insight]
    applicability: ApplicabilityAnalysis
    regional_breakdown: Dict[str, int]
    domestic_sources: List[str]
    global_sources: List[str]
    metrics: AgentMetrics
    key_findings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    fallback_used: bool = False
    generated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Serializza per logging/agenti a valle."""
        return {
            "theme": self.theme,
            "queries": self.queries.to_dict(),
            "summary": self.summary,
            "key_findings": self.key_findings,
            "recommendations": self.recommendations,
            "insights": {
                "market_size": self.insights.market_size,
                "competitors": self.insights.competitors,
                "trends": self.insights.trends,
                "regulations": self.insights.regulations,
                "customer_needs": self.insights.customer_needs,
            },
            "global_insights": {
                "innovations": self.global_insights.innovations,
                "technologies": self.global_insights.technologies,
                "best_practices": self.global_insights.best_practices,
                "applicability": self.global_insights.applicability,
            },
            "key_insights": [i.to_dict() for i in self.key_insights],
            "applicability": self.applicability.to_dict(),
            "regional_breakdown": self.regional_breakdown,
            "sources": {
                "domestic": self.domestic_sources,
                "global": self.global_sources,
            },
            "metrics": self.metrics.to_dict(),
            "fallback_used": self.fallback_used,
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass
class PhaseMessage:
    """Messaggio di avanzamento emesso a ogni transizione di fase."""
    phase: ResearchPhase
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ResearchOutcome:
    """
    Esito di un'esecuzione dell'orchestratore.

    success è False solo se l'input iniziale non era valido.
    """
    success: bool
    metrics: AgentMetrics
    summary: Optional[ResearchSummary] = None
    error: Optional[str] = None
    messages: List[PhaseMessage] = field(default_factory=list)
