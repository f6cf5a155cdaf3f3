"""
Split Resolver

Attaches split lines to root transactions. One level only: a line
never has lines of its own.

The per-root reads are awaited together with asyncio.gather. The SQL
store answers each read synchronously, so against it they still run
one after another on the event loop; the gather only keeps the result
order aligned with the roots.
"""

import asyncio

from ledger.models.transaction import RootTransaction
from ledger.services.storage import TransactionStorageInterface


class SplitResolver:
    """Issues one split-line read per root and attaches the results."""

    def __init__(self, storage: TransactionStorageInterface):
        self._storage = storage

    async def attach(self, roots: list[RootTransaction]) -> list[RootTransaction]:
        """
        Return copies of the roots with `children` filled in.

        Lines are ordered by id ascending; a root without lines gets [].
        """
        if not roots:
            return []

        line_sets = await asyncio.gather(
            *(self._storage.list_split_lines(root.id) for root in roots)
        )

        return [
            root.model_copy(update={"children": list(lines)})
            for root, lines in zip(roots, line_sets)
        ]
