"""
Delivery strategies for adding a record as a NotebookLM source.
Abstracts how a record reaches the notebook from the dispatching logic.
"""

import abc

from notebooklm_bridge.outcomes import Outcome
from notebooklm_bridge.records import ContentRecord
from notebooklm_bridge.session import TargetSessionState


class DeliveryStrategy(abc.ABC):
    """Abstract base class for delivery strategies."""

    name: str = "base"

    @abc.abstractmethod
    def attempt(self, record: ContentRecord, session: TargetSessionState) -> Outcome:
        """
        Try to add ``record`` to the notebook described by ``session``.

        Args:
            record: The content to deliver.
            session: A freshly computed snapshot of the target page.

        Returns:
            An Outcome; only DELIVERED and PARTIAL count as success.
        """


def format_text_source(record: ContentRecord) -> str:
    """Render a record as pasted text: a heading with the title, then the body."""
    return f"# {record.title}\n\n{record.body}"
