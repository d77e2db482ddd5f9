"""
Sentiment Enrichment

Groq-backed classification plus heuristic reliability / impact scoring.
"""
from news_aggregator.sentiment.classifier import (
    ClassificationResult,
    ResultOrigin,
    SentimentClassifier,
)
from news_aggregator.sentiment.enrichment import NewsEnricher
from news_aggregator.sentiment.groq_client import GroqClassificationError, GroqClient
from news_aggregator.sentiment.scoring import HeuristicScoring, ScoringStrategy

__all__ = [
    "ClassificationResult",
    "GroqClassificationError",
    "GroqClient",
    "HeuristicScoring",
    "NewsEnricher",
    "ResultOrigin",
    "ScoringStrategy",
    "SentimentClassifier",
]
