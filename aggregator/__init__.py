"""Aggregator module - deduplicazione e scoring dei risultati."""
from aggregator.result_aggregator import ResultAggregator

__all__ = ["ResultAggregator"]
