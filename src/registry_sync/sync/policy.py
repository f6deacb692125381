from __future__ import annotations

import logging
from dataclasses import dataclass

from registry_sync.registry.models import Registry
from registry_sync.registry.store import RegistryStore

logger = logging.getLogger(__name__)


@dataclass
class Checkpointer:
    """Persist the registry every ``every`` processed items (0 disables intermediate saves).

    A crash between checkpoints loses at most ``every`` items of progress, all of
    which the next run redoes safely.
    """

    store: RegistryStore
    registry: Registry
    every: int
    pending: int = 0
    saves: int = 0

    def advance(self) -> None:
        self.pending += 1
        if self.every > 0 and self.pending >= self.every:
            self.flush()

    def flush(self) -> None:
        self.store.save(self.registry)
        self.saves += 1
        if self.pending:
            logger.info(
                "Checkpoint: registry saved (%d records, %d new items)",
                len(self.registry.records),
                self.pending,
            )
        self.pending = 0
