"""Link previews built from OpenGraph metadata."""

from .fetcher import BackoffError, Fetcher, PreviewError, canonical_url
from .monitored import Monitored, Result, Results

__all__ = [
    "BackoffError",
    "Fetcher",
    "Monitored",
    "PreviewError",
    "Result",
    "Results",
    "canonical_url",
]
