"""Engine components: parse → fetch → compare → collect → export."""

from .collector import ResultCollector
from .fetcher import FetchResponse, Fetcher, build_client, normalise_domain
from .matcher import VerificationResult, compare, failure, match
from .parser import AccountType, Parser, Record, parse, parse_from_url
from .throttle import BatchThrottle

__all__ = [
    "AccountType",
    "BatchThrottle",
    "FetchResponse",
    "Fetcher",
    "Parser",
    "Record",
    "ResultCollector",
    "VerificationResult",
    "build_client",
    "compare",
    "failure",
    "match",
    "normalise_domain",
    "parse",
    "parse_from_url",
]
