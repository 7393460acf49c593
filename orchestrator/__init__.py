"""Orchestrator module - pianificazione e coordinamento della ricerca."""
from orchestrator.query_planner import QueryPlanner
from orchestrator.research_orchestrator import ResearchOrchestrator

__all__ = [
    "QueryPlanner",
    "ResearchOrchestrator",
]
