"""Transaction: All-or-nothing execution over several stateful components.

Participants expose ``snapshot()`` returning an opaque copy of their state
and ``restore(state)`` putting it back. The transaction snapshots every
participant on entry and restores all of them if the block raises; the
exception then propagates unchanged.

.. code-block:: python

    >>> with Transaction([gateway, ledger], name="swap"):
    ...     gateway.ingest_updates(update_data, fee)
    ...     ledger.apply_swap_delta(delta_a, delta_b)
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Iterable, Protocol

logger = logging.getLogger(__name__)


class Snapshottable(Protocol):
    """Component whose state can be captured and restored."""

    def snapshot(self) -> Any: ...

    def restore(self, state: Any) -> None: ...


class Transaction:
    """Context manager rolling back participants when the block fails.

    :ivar participants: Components covered by the transaction.
    :ivar name: Label used in log messages.
    """

    def __init__(self, participants: Iterable[Snapshottable], name: str = "tx") -> None:
        """Initialize the transaction.

        :param participants: Components to snapshot and restore.
        :param name: Label used in log messages (default: "tx").
        """
        self.participants = list(participants)
        self.name = name
        self._snapshots: list[Any] | None = None

    def __enter__(self) -> Transaction:
        if self._snapshots is not None:
            raise RuntimeError(f"Transaction {self.name} is already active")
        self._snapshots = [p.snapshot() for p in self.participants]
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        snapshots = self._snapshots
        self._snapshots = None
        if exc_type is not None and snapshots is not None:
            self.rollback(snapshots)
            logger.debug(f"Transaction {self.name} rolled back: {exc_type.__name__}: {exc}")
        return False

    def rollback(self, snapshots: list[Any]) -> None:
        """Restore every participant from the given snapshots."""
        for participant, state in zip(self.participants, snapshots, strict=True):
            participant.restore(state)
