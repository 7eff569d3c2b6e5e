"""All-or-nothing execution across one or more pairs.

A transaction takes the exclusive lock of every pair it touches in
ascending address order, so two multi-hop swaps over overlapping pairs can
never deadlock. Pair state is snapshotted after the locks are held and
restored, together with every ledger movement, if the block raises.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from dex.pairs.pair import Pair
    from dex.tokens.ledger import TokenLedger

logger = structlog.get_logger()


def lock_order(pairs: Iterable[Pair]) -> list[Pair]:
    """Deduplicate pairs and sort them into the global lock order."""
    unique = {pair.address: pair for pair in pairs}
    return [unique[address] for address in sorted(unique)]


@contextmanager
def atomic(ledger: TokenLedger, pairs: Iterable[Pair]) -> Iterator[None]:
    """Run the block with exclusive access to pairs and roll back on any error.

    Re-entrant: a pair operation invoked inside a router transaction that
    already holds the pair's lock nests into it, and only the outermost
    block's failure leaves no trace at all.
    """
    ordered = lock_order(pairs)
    with ExitStack() as stack:
        for pair in ordered:
            stack.enter_context(pair.lock)
        snapshots = [(pair, pair.snapshot()) for pair in ordered]
        try:
            with ledger.atomic():
                yield
        except BaseException as exc:
            for pair, snapshot in snapshots:
                pair.restore(snapshot)
            logger.debug(
                "transaction_rolled_back",
                pairs=[pair.address for pair in ordered],
                error=type(exc).__name__,
            )
            raise
