"""Prompt per la pianificazione delle query e per la sintesi finale."""

from config import MarketProfile
from core.models import GlobalInsights, MarketInsights

NO_DATA = "nessuna informazione"

PLANNING_SYSTEM_PROMPT = """Sei un esperto di ricerche di mercato. Dato un tema, genera le query di ricerca web per un'analisi completa.

Genera esattamente:
- 5 query per il mercato domestico ({market}), scritte in lingua "{lang}", nell'ordine:
  market_size, competitors, trends, regulations, needs
- 3 query in inglese sui casi esteri più avanzati, nell'ordine:
  startups, technology, best_practices

Rispondi solo con un oggetto JSON:
{{
  "domestic": [{{"query": "...", "purpose": "market_size"}}, ...],
  "global": [{{"query": "...", "purpose": "startups"}}, ...]
}}"""

SUMMARY_SYSTEM_PROMPT = """Sei un analista di mercato. Sulla base dei dati raccolti scrivi una sintesi concisa e professionale che includa:
1. Quadro generale del mercato
2. Risultati principali (3-5 punti numerati)
3. Opportunità di business
4. Raccomandazioni: azioni suggerite (facoltativo)"""


def build_planning_prompt(theme: str, profile: MarketProfile) -> tuple:
    """Restituisce (system, user) per la pianificazione delle query."""
    system = PLANNING_SYSTEM_PROMPT.format(market=profile.name, lang=profile.lang_code)
    return system, f"Tema: {theme}"


def build_summary_prompt(
    theme: str,
    insights: MarketInsights,
    global_insights: GlobalInsights,
) -> tuple:
    """Restituisce (system, user) per la sintesi narrativa."""
    lines = [
        f"Tema: {theme}",
        "",
        "Insight raccolti:",
        f"- Dimensione del mercato: {insights.market_size or NO_DATA}",
        f"- Principali concorrenti: {_join(insights.competitors)}",
        f"- Trend: {_join(insights.trends)}",
        f"- Normativa: {_join(insights.regulations)}",
        f"- Bisogni dei clienti: {_join(insights.customer_needs)}",
        "",
        "Casi esteri:",
        f"- Innovazioni: {_join(global_insights.innovations)}",
        f"- Tecnologie: {_join(global_insights.technologies)}",
        f"- Applicabilità al mercato domestico: {global_insights.applicability or NO_DATA}",
    ]
    return SUMMARY_SYSTEM_PROMPT, "\n".join(lines)


def _join(items) -> str:
    return ", ".join(items) if items else NO_DATA
