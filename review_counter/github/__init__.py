"""Metrics source — counts of issues, PRs and project cards from GitHub."""

from review_counter.github.client import GitHubClient
from review_counter.github.exceptions import (
    FetchError,
    FetchParseError,
    FetchStatusError,
    FetchTransportError,
)

__all__ = [
    "FetchError",
    "FetchParseError",
    "FetchStatusError",
    "FetchTransportError",
    "GitHubClient",
]
