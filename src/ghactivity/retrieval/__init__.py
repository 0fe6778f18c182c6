"""Paginated, throttle-aware retrieval of GitHub contributions."""

from ghactivity.retrieval.client import GraphQLClient
from ghactivity.retrieval.orchestrator import AggregatedContributions, ContributionOrchestrator
from ghactivity.retrieval.pagination import PaginationDriver
from ghactivity.retrieval.progress import LoggingProgressSink, ProgressSink, TqdmProgressSink
from ghactivity.retrieval.rate_limit import (
    RateLimitStatus,
    compute_backoff,
    fetch_viewer_login,
    probe_rate_limit,
)
from ghactivity.retrieval.records import ContributionKind, PageInfo, RecordPage
from ghactivity.retrieval.retrievers import make_retriever

__all__ = [
    "GraphQLClient",
    "AggregatedContributions",
    "ContributionOrchestrator",
    "PaginationDriver",
    "ProgressSink",
    "LoggingProgressSink",
    "TqdmProgressSink",
    "RateLimitStatus",
    "compute_backoff",
    "fetch_viewer_login",
    "probe_rate_limit",
    "ContributionKind",
    "PageInfo",
    "RecordPage",
    "make_retriever",
]
