"""
Reads Markdown notes from a local vault and turns them into ContentRecords.
"""

import datetime
import logging
import re
from pathlib import Path
from typing import List, Optional, Tuple

import yaml

from notebooklm_bridge.records import ContentRecord, RecordMetadata

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"^---\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
INLINE_TAG_RE = re.compile(r"(?<![\w#/])#([\w/-]+)")


def split_frontmatter(text: str) -> Tuple[dict, str]:
    """Return (frontmatter mapping, remaining text). Malformed frontmatter is treated as absent."""
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring unreadable frontmatter: {e}")
        return {}, text
    if not isinstance(data, dict):
        return {}, text
    return data, text[match.end():]


def collect_tags(frontmatter: dict, body: str) -> Tuple[str, ...]:
    tags: List[str] = []
    declared = frontmatter.get("tags") or []
    if isinstance(declared, str):
        declared = [t for t in re.split(r"[,\s]+", declared) if t]
    for tag in declared:
        tag = f"#{str(tag).lstrip('#')}"
        if tag not in tags:
            tags.append(tag)
    for match in INLINE_TAG_RE.finditer(body):
        tag = f"#{match.group(1)}"
        if tag not in tags:
            tags.append(tag)
    return tuple(tags)


class MarkdownNoteSource:
    """Content producer over a folder of Markdown notes (an Obsidian-style vault)."""

    def __init__(self, vault_path: str, include_frontmatter: bool = False, include_metadata: bool = True):
        self.vault_path = Path(vault_path).expanduser().resolve()
        if not self.vault_path.exists():
            raise ValueError(f"Vault path does not exist: {self.vault_path}")
        self.include_frontmatter = include_frontmatter
        self.include_metadata = include_metadata

    def read(self, identifier: str) -> Optional[ContentRecord]:
        path = Path(identifier)
        if not path.is_absolute():
            path = (self.vault_path / path).resolve()
            if not _is_within(path, self.vault_path):
                raise ValueError(f"Note path escapes the vault: {identifier}")
        if not path.is_file() and path.suffix != ".md":
            path = path.with_name(path.name + ".md")
        if not path.is_file():
            logger.info(f"Note not found: {identifier}")
            return None
        return self._to_record(path)

    def read_current(self) -> Optional[ContentRecord]:
        """The most recently modified note stands in for the note open in the editor."""
        notes = [p for p in self.vault_path.rglob("*.md") if not _is_hidden(p, self.vault_path)]
        if not notes:
            return None
        return self._to_record(max(notes, key=lambda p: p.stat().st_mtime))

    def _to_record(self, path: Path) -> ContentRecord:
        text = path.read_text(encoding="utf-8")
        frontmatter, stripped = split_frontmatter(text)
        body = text if self.include_frontmatter else stripped

        metadata = None
        if self.include_metadata:
            stat = path.stat()
            metadata = RecordMetadata(
                created=datetime.datetime.fromtimestamp(stat.st_ctime),
                modified=datetime.datetime.fromtimestamp(stat.st_mtime),
                tags=collect_tags(frontmatter, stripped),
            )

        share_link = frontmatter.get("share_link")
        return ContentRecord(
            title=path.stem,
            body=body.strip(),
            external_link=str(share_link).strip() if share_link else None,
            metadata=metadata,
            path=self._vault_relative(path),
        )

    def _vault_relative(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.vault_path).as_posix()
        except ValueError:
            # Note passed by absolute path from outside the vault
            return path.as_posix()


def record_from_selection(text: str, title: Optional[str] = None) -> ContentRecord:
    """Wrap an editor selection as a record."""
    return ContentRecord(title=(title or "").strip() or "Selection", body=text.strip())


def _is_hidden(path: Path, root: Path) -> bool:
    return any(part.startswith(".") for part in path.relative_to(root).parts)


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True
