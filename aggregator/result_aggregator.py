"""
Result Aggregator - deduplicazione, classificazione e scoring dei risultati.

Funzioni pure su un batch di risultati già disponibili: nessun I/O,
nessuno stato condiviso tra esecuzioni.
"""
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlparse
import logging
import re

from config import JAPAN_PROFILE, MarketProfile
from core.models import (
    ApplicabilityAnalysis,
    CategorizedResults,
    GlobalInsights,
    Insight,
    InsightType,
    MarketInsights,
    SearchResult,
)
from utils.validators import age_in_days

logger = logging.getLogger(__name__)

# Parole chiave per categoria (mercato domestico giapponese + inglese)
CATEGORY_KEYWORDS: Dict[InsightType, List[str]] = {
    InsightType.MARKET: ["市場規模", "市場", "market size", "market", "tam", "成長率", "growth"],
    InsightType.COMPETITOR: ["競合", "competitor", "rival", "大手", "player", "vendor"],
    InsightType.TREND: ["トレンド", "trend", "動向", "最新", "latest", "2024", "2025", "2026"],
    InsightType.REGULATION: ["規制", "regulation", "法律", "law", "policy", "政策", "compliance"],
    InsightType.NEED: ["ニーズ", "need", "課題", "challenge", "problem", "要望", "demand"],
    InsightType.INNOVATION: ["innovation", "startup", "unicorn", "革新", "disrupt", "technology"],
}

# Ordine di valutazione delle categorie per ogni risultato
CATEGORY_ORDER: List[InsightType] = [
    InsightType.MARKET,
    InsightType.COMPETITOR,
    InsightType.TREND,
    InsightType.REGULATION,
    InsightType.NEED,
    InsightType.INNOVATION,
]

# Numero con unità di grandezza: "1,200億", "3.5 billion"
MAGNITUDE_PATTERN = re.compile(r'\d+[\d,.]*\s*(?:億|兆|万|million|billion|trillion)', re.IGNORECASE)

# Frase sulla dimensione del mercato che termina con una grandezza ("1兆2000億" incluso)
MARKET_SIZE_PATTERN = re.compile(
    r'(?:市場規模|market size|tam).*?\d+[\d,.]*\s*(?:億|兆|万|million|billion|trillion)'
    r'(?:\d+[\d,.]*\s*(?:億|万))?',
    re.IGNORECASE,
)

BASE_SCORE = 0.5
POSITION_STEP = 0.05
FRESH_30_DAYS_BONUS = 0.2
FRESH_90_DAYS_BONUS = 0.1
MARKET_MAGNITUDE_BONUS = 0.2
INNOVATION_STARTUP_BONUS = 0.15

MARKET_EXCERPT_LENGTH = 100
EXCERPT_LENGTH = 150
APPLICABILITY_CAP = 5

# (trigger, etichetta) per l'analisi di applicabilità dei casi esteri
ADAPTATION_TRIGGERS: List[Tuple[Tuple[str, ...], str]] = [
    (("localization", "localisation", "adaptation"), "Necessaria localizzazione"),
    (("culture", "cultural"), "Personalizzazione per il mercato domestico"),
    (("language", "translation"), "Adattamento linguistico dei contenuti"),
    (("integration", "legacy"), "Integrazione con i sistemi esistenti"),
]
CHALLENGE_TRIGGERS: List[Tuple[Tuple[str, ...], str]] = [
    (("regulation", "compliance"), "Necessario adeguamento normativo"),
    (("culture", "cultural"), "Necessario adattamento culturale"),
    (("privacy", "data protection"), "Vincoli sulla protezione dei dati"),
    (("cost", "expensive"), "Struttura dei costi da verificare"),
]
OPPORTUNITY_TRIGGERS: List[Tuple[Tuple[str, ...], str]] = [
    (("partnership", "collaboration"), "Opportunità di partnership"),
    (("funding", "investment", "raised"), "Interesse degli investitori"),
    (("growth", "expansion"), "Mercato in espansione"),
    (("automation", "efficiency"), "Guadagni di efficienza"),
]


class ResultAggregator:
    """
    Trasforma i risultati grezzi in insight ordinati per rilevanza.

    Responsabilità:
    - Deduplicare i risultati per link
    - Classificare per categoria tramite parole chiave e calcolare lo score
    - Dividere i risultati tra fonti domestiche e globali
    - Valutare l'applicabilità dei casi esteri al mercato domestico
    """

    def __init__(
        self,
        profile: MarketProfile = JAPAN_PROFILE,
        max_insights: int = 20,
        now: Callable[[], datetime] = datetime.now,
    ):
        """
        Inizializza l'aggregatore.

        Args:
            profile: Profilo del mercato domestico
            max_insights: Numero massimo di insight restituiti
            now: Sorgente dell'istante corrente per il bonus di freschezza
        """
        self.profile = profile
        self.max_insights = max_insights
        self._now = now
        self._script_pattern = re.compile(profile.script_pattern)

    def remove_duplicates(self, results: Iterable[SearchResult]) -> List[SearchResult]:
        """
        Rimuove i duplicati usando il link come identità.

        Vince la prima occorrenza; l'ordine è preservato.

        Args:
            results: Risultati da deduplicare

        Returns:
            Lista senza link ripetuti
        """
        seen = set()
        unique: List[SearchResult] = []
        for result in results:
            if result.link in seen:
                continue
            seen.add(result.link)
            unique.append(result)
        return unique

    def extract_insights(self, results: Sequence[SearchResult]) -> List[Insight]:
        """
        Estrae gli insight dai risultati.

        Un risultato può produrre zero, uno o più insight (uno per
        categoria riconosciuta). Output ordinato per score decrescente
        e troncato a max_insights.

        Args:
            results: Risultati da analizzare

        Returns:
            Lista di Insight
        """
        now = self._now()
        insights: List[Insight] = []

        for result in results:
            for insight_type in self.match_categories(result):
                insights.append(Insight(
                    type=insight_type,
                    content=self._extract_content(result, insight_type),
                    source_link=result.link,
                    relevance_score=self.calculate_relevance(result, insight_type, now),
                ))

        # sorted() è stabile: a parità di score resta l'ordine di input
        insights = sorted(insights, key=lambda i: i.relevance_score, reverse=True)
        logger.debug(f"Extracted {len(insights)} insights from {len(results)} results")
        return insights[:self.max_insights]

    def match_categories(self, result: SearchResult) -> List[InsightType]:
        """Categorie le cui parole chiave compaiono in titolo o snippet."""
        text = result.text.lower()
        return [
            insight_type for insight_type in CATEGORY_ORDER
            if any(keyword in text for keyword in CATEGORY_KEYWORDS[insight_type])
        ]

    def calculate_relevance(
        self,
        result: SearchResult,
        insight_type: InsightType,
        now: Optional[datetime] = None,
    ) -> float:
        """
        Calcola lo score di rilevanza (0-1).

        Basato su:
        - Base 0.5
        - Posizione nei risultati: (10 - min(pos, 10)) * 0.05
        - Freschezza: < 30 giorni +0.2, < 90 giorni +0.1
        - Bonus di categoria (grandezze numeriche per market,
          startup/unicorn per innovation)

        Args:
            result: Risultato valutato
            insight_type: Categoria dell'insight
            now: Istante di riferimento per la freschezza

        Returns:
            Score in [0, 1]
        """
        score = BASE_SCORE

        if result.position is not None:
            score += (10 - min(result.position, 10)) * POSITION_STEP

        age = age_in_days(result.published_date, now or self._now())
        if age is not None:
            if age < 30:
                score += FRESH_30_DAYS_BONUS
            elif age < 90:
                score += FRESH_90_DAYS_BONUS

        snippet = result.snippet.lower()
        if insight_type == InsightType.MARKET and MAGNITUDE_PATTERN.search(result.snippet):
            score += MARKET_MAGNITUDE_BONUS
        elif insight_type == InsightType.INNOVATION and ("startup" in snippet or "unicorn" in snippet):
            score += INNOVATION_STARTUP_BONUS

        return max(0.0, min(score, 1.0))

    def categorize_by_region(self, results: Iterable[SearchResult]) -> CategorizedResults:
        """
        Divide i risultati tra domestici e globali.

        Euristica approssimata: dominio con suffisso domestico oppure
        caratteri dello script domestico in titolo/snippet. Non deve
        necessariamente coincidere con la regione della query.

        Args:
            results: Risultati da dividere

        Returns:
            CategorizedResults
        """
        categorized = CategorizedResults()
        for result in results:
            if self.is_domestic(result):
                categorized.domestic.append(result)
            else:
                categorized.global_results.append(result)
        return categorized

    def is_domestic(self, result: SearchResult) -> bool:
        """Vero se il risultato proviene dal mercato domestico."""
        host = (urlparse(result.link).hostname or "").lower()
        if any(host.endswith(suffix) for suffix in self.profile.domain_suffixes):
            return True
        return bool(self._script_pattern.search(result.title + result.snippet))

    def analyze_applicability(self, global_results: Sequence[SearchResult]) -> ApplicabilityAnalysis:
        """
        Valuta l'applicabilità dei casi esteri al mercato domestico.

        Args:
            global_results: Risultati delle ricerche globali

        Returns:
            ApplicabilityAnalysis con liste deduplicate (max 5 ciascuna)
        """
        adaptations: List[str] = []
        challenges: List[str] = []
        opportunities: List[str] = []

        for result in global_results:
            text = result.text.lower()
            _collect(text, ADAPTATION_TRIGGERS, adaptations)
            _collect(text, CHALLENGE_TRIGGERS, challenges)
            _collect(text, OPPORTUNITY_TRIGGERS, opportunities)

        return ApplicabilityAnalysis(
            applicable=len(global_results) > 0,
            reasoning=self._applicability_reasoning(len(global_results), adaptations, challenges),
            adaptations=adaptations[:APPLICABILITY_CAP],
            challenges=challenges[:APPLICABILITY_CAP],
            opportunities=opportunities[:APPLICABILITY_CAP],
        )

    def group_insights(
        self,
        insights: Sequence[Insight],
        applicability: Optional[ApplicabilityAnalysis] = None,
    ) -> Tuple[MarketInsights, GlobalInsights]:
        """
        Raggruppa gli insight per categoria.

        Args:
            insights: Insight ordinati per rilevanza
            applicability: Analisi dei casi esteri

        Returns:
            Tupla (MarketInsights, GlobalInsights)
        """
        by_type: Dict[InsightType, List[str]] = {t: [] for t in InsightType}
        for insight in insights:
            by_type[insight.type].append(insight.content)

        trends = by_type[InsightType.TREND]
        market = MarketInsights(
            market_size=by_type[InsightType.MARKET][0] if by_type[InsightType.MARKET] else None,
            competitors=by_type[InsightType.COMPETITOR][:5],
            trends=trends[:5],
            regulations=by_type[InsightType.REGULATION][:3],
            customer_needs=by_type[InsightType.NEED][:5],
        )
        global_insights = GlobalInsights(
            innovations=by_type[InsightType.INNOVATION][:3],
            technologies=[t for t in trends if "technology" in t.lower()][:3],
            best_practices=[i.content for i in insights if "best practice" in i.content.lower()][:3],
            applicability=applicability.reasoning if applicability else "",
        )
        return market, global_insights

    def collect_sources(self, results: Iterable[SearchResult], limit: int = 10) -> List[str]:
        """Link unici nell'ordine di apparizione, al massimo limit."""
        return [r.link for r in self.remove_duplicates(results)][:limit]

    def _extract_content(self, result: SearchResult, insight_type: InsightType) -> str:
        """Testo dell'insight: frase sul mercato se presente, altrimenti l'inizio dello snippet."""
        if insight_type == InsightType.MARKET:
            match = MARKET_SIZE_PATTERN.search(result.snippet)
            return match.group(0) if match else result.snippet[:MARKET_EXCERPT_LENGTH]
        return result.snippet[:EXCERPT_LENGTH]

    def _applicability_reasoning(
        self,
        case_count: int,
        adaptations: List[str],
        challenges: List[str],
    ) -> str:
        if case_count == 0:
            return "Non sono stati trovati casi esteri rilevanti."

        market = f"mercato domestico ({self.profile.name})"
        prefix = f"Dall'analisi di {case_count} casi esteri"

        if adaptations and challenges:
            return (
                f"{prefix} emergono {len(adaptations)} elementi di adattamento e "
                f"{len(challenges)} criticità per l'applicazione al {market}. "
                f"Con gli opportuni interventi l'applicazione è ritenuta fattibile."
            )
        if adaptations:
            return (
                f"{prefix} risulta che, considerando {len(adaptations)} elementi di "
                f"adattamento, il modello è applicabile al {market}."
            )
        if challenges:
            return (
                f"{prefix} emergono {len(challenges)} criticità. "
                f"La loro risoluzione è la chiave per l'ingresso nel {market}."
            )
        return f"{prefix} è stata confermata l'applicabilità al {market}."


def _collect(text: str, triggers: List[Tuple[Tuple[str, ...], str]], target: List[str]) -> None:
    """Aggiunge a target le etichette attivate, senza duplicati."""
    for keywords, label in triggers:
        if label not in target and any(k in text for k in keywords):
            target.append(label)
