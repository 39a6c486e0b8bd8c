"""
Dispatcher: drains the delivery queue into the open notebook.

Each entry is tried with the configured strategies in order, then handed to the
clipboard if none of them delivered it. Deliveries are strictly sequential since
every strategy works against the same page and its dialogs.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from notebooklm_bridge.clipboard import ClipboardFallback
from notebooklm_bridge.delivery_queue import DeliveryQueue, QueueEntry
from notebooklm_bridge.errors import DispatchInProgress
from notebooklm_bridge.notifier import Level, LogNotifier, Notifier
from notebooklm_bridge.outcomes import Outcome, OutcomeKind
from notebooklm_bridge.session import TargetSessionLocator, TargetSessionState
from notebooklm_bridge.strategy import DeliveryStrategy

logger = logging.getLogger(__name__)


class DispatchStatus(enum.Enum):
    EMPTY = "empty"
    NOT_READY = "not_ready"
    DELIVERED = "delivered"
    PARTIAL = "partial"
    CLIPBOARD = "clipboard"
    FAILED = "failed"


@dataclass
class DispatchResult:
    status: DispatchStatus
    entry_id: Optional[str] = None
    strategy: Optional[str] = None
    attempts: List[Tuple[str, Outcome]] = field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return self.status in (DispatchStatus.DELIVERED, DispatchStatus.PARTIAL)


def order_strategies(strategies: Sequence[DeliveryStrategy], preferred: str) -> List[DeliveryStrategy]:
    """Put the strategy named ``preferred`` first, keeping the others in their given order."""
    first = [s for s in strategies if s.name == preferred]
    if not first:
        raise ValueError(f"Unknown strategy '{preferred}'. Available: {[s.name for s in strategies]}")
    return first + [s for s in strategies if s.name != preferred]


class Dispatcher:
    def __init__(
        self,
        queue: DeliveryQueue,
        locator: TargetSessionLocator,
        strategies: Sequence[DeliveryStrategy],
        clipboard: Optional[ClipboardFallback] = None,
        notifier: Optional[Notifier] = None,
    ):
        if not strategies:
            raise ValueError("Dispatcher needs at least one delivery strategy")
        self.queue = queue
        self.locator = locator
        self.strategies = list(strategies)
        self.clipboard = clipboard or ClipboardFallback()
        self.notifier = notifier or LogNotifier()
        self._busy = False

    def dispatch_next(self) -> DispatchResult:
        if self._busy:
            raise DispatchInProgress("A delivery is already in progress")

        entry = self.queue.peek_next_pending()
        if entry is None:
            return DispatchResult(DispatchStatus.EMPTY)

        session = self.locator.current_state()
        if not session.inside_container:
            self.notifier.notify("Open a notebook in NotebookLM first.", Level.WARNING)
            return DispatchResult(DispatchStatus.NOT_READY, entry_id=entry.id)

        self._busy = True
        try:
            return self._deliver(entry, session)
        finally:
            self._busy = False

    def dispatch_all(self) -> List[DispatchResult]:
        results = []
        while True:
            result = self.dispatch_next()
            if result.status is DispatchStatus.EMPTY:
                break
            results.append(result)
            # A partial hand-off leaves its dialog open for the user to confirm.
            if result.status in (DispatchStatus.NOT_READY, DispatchStatus.PARTIAL):
                break
        return results

    def _deliver(self, entry: QueueEntry, session: TargetSessionState) -> DispatchResult:
        record = entry.record
        attempts: List[Tuple[str, Outcome]] = []
        self.notifier.notify(f'Adding "{record.title}"...', Level.PROGRESS)

        for index, strategy in enumerate(self.strategies):
            if index > 0:
                logger.info(f"Falling back to the {strategy.name} strategy for '{record.title}'")
                session = self.locator.current_state()

            outcome = self._attempt(strategy, entry, session)
            attempts.append((strategy.name, outcome))
            if outcome.succeeded:
                self.queue.mark_sent(entry.id)
                return self._report_success(entry, strategy.name, outcome, attempts)
            logger.info(f"{strategy.name} strategy did not deliver '{record.title}': {outcome.describe()}")

        copied = self.clipboard.copy_to_clipboard(record)
        self.queue.mark_failed(entry.id)
        if copied:
            self.notifier.notify(
                f'Could not add "{record.title}" automatically. '
                f'It is on the clipboard; paste it as "Copied text".',
                Level.WARNING,
            )
            status = DispatchStatus.CLIPBOARD
        else:
            self.notifier.notify(f'Failed to add "{record.title}".', Level.ERROR)
            status = DispatchStatus.FAILED
        return DispatchResult(status, entry_id=entry.id, attempts=attempts)

    def _attempt(self, strategy: DeliveryStrategy, entry: QueueEntry, session: TargetSessionState) -> Outcome:
        try:
            return strategy.attempt(entry.record, session)
        except Exception as e:
            logger.exception(f"{strategy.name} strategy raised while delivering {entry.id}")
            return Outcome.error(f"{type(e).__name__}: {e}")

    def _report_success(
        self, entry: QueueEntry, strategy: str, outcome: Outcome, attempts: List[Tuple[str, Outcome]]
    ) -> DispatchResult:
        title = entry.record.title
        if outcome.kind is OutcomeKind.PARTIAL:
            self.notifier.notify(f'"{title}" is filled in. Press "Insert" to finish.', Level.WARNING)
            status = DispatchStatus.PARTIAL
        else:
            self.notifier.notify(f'"{title}" added as a source.', Level.SUCCESS)
            status = DispatchStatus.DELIVERED
        return DispatchResult(status, entry_id=entry.id, strategy=strategy, attempts=attempts)
