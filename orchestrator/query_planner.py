"""
Query Planner - generazione delle query di ricerca per un tema.

Chiede al modello linguistico un insieme strutturato di query; in caso
di qualsiasi errore usa template deterministici derivati dal tema,
così la pipeline procede anche senza LLM disponibile.
"""
from typing import List, Optional
import logging

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from config import (
    DOMESTIC_PURPOSES,
    GLOBAL_GEO_CODE,
    GLOBAL_LANG_CODE,
    GLOBAL_PURPOSES,
    GLOBAL_QUERY_TEMPLATES,
    JAPAN_PROFILE,
    MarketProfile,
)
from core.exceptions import LLMError
from core.models import AgentMetrics, ErrorRecord, QuerySet, Region, SearchQuery
from llm.base import BaseLLMClient, parse_structured_output
from orchestrator.prompts import build_planning_prompt

logger = logging.getLogger(__name__)

DOMESTIC_QUERY_COUNT = len(DOMESTIC_PURPOSES)
GLOBAL_QUERY_COUNT = len(GLOBAL_PURPOSES)


class PlannedQuery(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    query: str = Field(..., min_length=1)
    purpose: Optional[str] = None


class QueryPlan(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    domestic: List[PlannedQuery] = Field(..., min_length=DOMESTIC_QUERY_COUNT, max_length=DOMESTIC_QUERY_COUNT)
    global_queries: List[PlannedQuery] = Field(
        ..., alias="global", min_length=GLOBAL_QUERY_COUNT, max_length=GLOBAL_QUERY_COUNT
    )


class QueryPlanner:
    """
    Pianifica 5 query domestiche e 3 globali per un tema.

    Il piano prodotto dal modello viene validato per numero e forma;
    qualsiasi scostamento attiva il fallback a template.
    """

    def __init__(
        self,
        llm_client: Optional[BaseLLMClient] = None,
        profile: MarketProfile = JAPAN_PROFILE,
        result_count: int = 10,
    ):
        """
        Inizializza il planner.

        Args:
            llm_client: Client LLM (None = solo template)
            profile: Profilo del mercato domestico
            result_count: Risultati richiesti per query
        """
        self.llm_client = llm_client
        self.profile = profile
        self.result_count = result_count

    def plan(self, theme: str, metrics: Optional[AgentMetrics] = None) -> QuerySet:
        """
        Genera il QuerySet per il tema.

        Non fallisce mai: gli errori del modello vengono registrati
        in metrics e sostituiti dal fallback.

        Args:
            theme: Tema validato
            metrics: Metriche dell'esecuzione (token, chiamate, errori)

        Returns:
            QuerySet con 5 query domestiche e 3 globali
        """
        if self.llm_client is None:
            logger.info("No LLM client configured, using template queries")
            return self.fallback_queries(theme)

        try:
            query_set = self._plan_with_llm(theme, metrics)
        except Exception as e:
            logger.warning(f"Query planning failed, using template queries: {e}")
            if metrics is not None:
                metrics.record_error(ErrorRecord(
                    kind=LLMError.__name__,
                    message=f"Query planning failed: {e}",
                    retryable=False,
                ))
            return self.fallback_queries(theme)

        logger.info(
            f"Planned {len(query_set.domestic_queries)} domestic and "
            f"{len(query_set.global_queries)} global queries"
        )
        return query_set

    def fallback_queries(self, theme: str) -> QuerySet:
        """
        Query derivate meccanicamente dal tema tramite template.

        Args:
            theme: Tema validato

        Returns:
            QuerySet con source="fallback"
        """
        domestic = [
            self._domestic_query(self.profile.query_templates[purpose].format(theme=theme), purpose)
            for purpose in DOMESTIC_PURPOSES
        ]
        global_queries = [
            self._global_query(GLOBAL_QUERY_TEMPLATES[purpose].format(theme=theme), purpose)
            for purpose in GLOBAL_PURPOSES
        ]
        return QuerySet(domestic_queries=domestic, global_queries=global_queries, source="fallback")

    def _plan_with_llm(self, theme: str, metrics: Optional[AgentMetrics]) -> QuerySet:
        system, prompt = build_planning_prompt(theme, self.profile)
        response = self.llm_client.complete(prompt, system=system, json_mode=True)
        if metrics is not None:
            metrics.record_llm_call(response.total_tokens)

        data = parse_structured_output(response.text)
        try:
            plan = QueryPlan.model_validate(data)
        except PydanticValidationError as e:
            raise LLMError(f"Query plan has wrong shape: {e.error_count()} error(s)") from e

        domestic = [
            self._domestic_query(item.query, item.purpose or DOMESTIC_PURPOSES[index])
            for index, item in enumerate(plan.domestic)
        ]
        global_queries = [
            self._global_query(item.query, item.purpose or GLOBAL_PURPOSES[index])
            for index, item in enumerate(plan.global_queries)
        ]
        return QuerySet(domestic_queries=domestic, global_queries=global_queries, source="llm")

    def _domestic_query(self, text: str, purpose: str) -> SearchQuery:
        return SearchQuery(
            text=text,
            region=Region.DOMESTIC,
            geo_code=self.profile.geo_code,
            lang_code=self.profile.lang_code,
            result_count=self.result_count,
            purpose=purpose,
        )

    def _global_query(self, text: str, purpose: str) -> SearchQuery:
        return SearchQuery(
            text=text,
            region=Region.GLOBAL,
            geo_code=GLOBAL_GEO_CODE,
            lang_code=GLOBAL_LANG_CODE,
            result_count=self.result_count,
            purpose=purpose,
        )
