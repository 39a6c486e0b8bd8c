"""Last-resort hand-off: put the record on the system clipboard for manual pasting."""

import logging

import pyperclip

from notebooklm_bridge.records import ContentRecord
from notebooklm_bridge.strategy import format_text_source

logger = logging.getLogger(__name__)


def clipboard_text(record: ContentRecord) -> str:
    """Link records hand off just the URL; text records the heading plus body."""
    if record.external_link:
        return record.external_link
    return format_text_source(record)


class ClipboardFallback:
    def copy_to_clipboard(self, record: ContentRecord) -> bool:
        try:
            pyperclip.copy(clipboard_text(record))
        except pyperclip.PyperclipException as e:
            logger.error(f"Clipboard copy failed for '{record.title}': {e}")
            return False
        logger.info(f"Copied '{record.title}' to the clipboard")
        return True
