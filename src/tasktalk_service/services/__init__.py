"""Business logic services."""

from .cache import CacheEntry, InMemoryStore, ResponseCache, Store
from .fetcher import backoff_delay, fetch_with_retry
from .nlp_interpreter import NLPInterpreter, ParseOutcome, normalize_input, parse_task_content
from .rate_limiter import RateLimiter, RateWindow
from .sessions import SessionRegistry
from .task_gateway import TaskGateway
from .token_manager import TokenManager

__all__ = [
    "fetch_with_retry",
    "backoff_delay",
    "CacheEntry",
    "Store",
    "InMemoryStore",
    "ResponseCache",
    "RateLimiter",
    "RateWindow",
    "SessionRegistry",
    "TokenManager",
    "NLPInterpreter",
    "ParseOutcome",
    "parse_task_content",
    "normalize_input",
    "TaskGateway",
]
