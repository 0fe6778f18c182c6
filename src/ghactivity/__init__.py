"""
ghactivity: export GitHub contribution activity to CSV.

Fetches pull requests, issues, code reviews and repository creations for
one or more logins through the GitHub GraphQL API.
"""

__version__ = "0.1.0"

from ghactivity.config import ReportConfig, RetrievalConfig
from ghactivity.retrieval.client import GraphQLClient
from ghactivity.retrieval.orchestrator import ContributionOrchestrator
from ghactivity.runner import run_report

__all__ = [
    "ReportConfig",
    "RetrievalConfig",
    "GraphQLClient",
    "ContributionOrchestrator",
    "run_report",
]
