"""trellor package initialization."""

from .errors import FormatError, HttpError, MergeError, TransportError, TrelloError
from .fetch import PAGE_LIMIT, TrelloClient, TrelloToken, get_flat, trello_get
from .flatten import flatten_page, is_tabular, merge_pages
from .resources import build_url, get_id_board
from .retry import RetryPolicy, call_with_retry

__version__ = "0.1.0"

__all__ = [
    "PAGE_LIMIT",
    "FormatError",
    "HttpError",
    "MergeError",
    "RetryPolicy",
    "TransportError",
    "TrelloClient",
    "TrelloError",
    "TrelloToken",
    "build_url",
    "call_with_retry",
    "flatten_page",
    "get_flat",
    "get_id_board",
    "is_tabular",
    "merge_pages",
    "trello_get",
]
