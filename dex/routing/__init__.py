"""Path quoting and swap routing.

The Router itself lives in dex.routing.router and is not re-exported here,
since it depends on dex.liquidity, which depends on the quote math below.
"""

from dex.routing.library import get_amount_in, get_amount_out, quote, sort_tokens
from dex.routing.quote import RouterQuoteEngine

__all__ = [
    "RouterQuoteEngine",
    "get_amount_in",
    "get_amount_out",
    "quote",
    "sort_tokens",
]
