"""
Target session locator.

Reads (never drives) the loaded NotebookLM page: which notebook, if any, is open,
and the session token the private endpoint requires. The token rotates, so a
fresh state is computed for every delivery attempt.
"""

import enum
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

NOTEBOOKLM_URL = "https://notebooklm.google.com/"

NOTEBOOK_PATH_RE = re.compile(r"/notebook/([^/?#]+)")

# Priority order: inline script assignment, runtime global, full-markup scan.
SCRIPT_TOKEN_RE = re.compile(r'"SNlM0e":"([^"]+)"')
MARKUP_TOKEN_RES = (
    re.compile(r"""SNlM0e['"]\s*:\s*['"]([\w:-]+)['"]"""),
    re.compile(r'SNlM0e.*?:.*?"([^"]+)"'),
)

SCRIPT_TEXTS_JS = """
() => Array.from(document.querySelectorAll('script')).map(s => s.textContent || '')
"""

GLOBAL_TOKEN_JS = """
() => (window.WIZ_global_data && window.WIZ_global_data.SNlM0e) || null
"""

NOTEBOOK_TITLE_JS = """
() => {
    const el = document.querySelector('h1, [class*="notebook-name"], [class*="title"]');
    return el ? (el.textContent || '').trim() : null;
}
"""

LIST_NOTEBOOKS_JS = """
() => {
    const notebooks = [];
    const seen = new Set();
    document.querySelectorAll('a[href*="/notebook/"]').forEach(el => {
        const href = el.getAttribute('href') || '';
        const match = href.match(/\\/notebook\\/([^/?#]+)/);
        if (!match || seen.has(match[1])) return;
        let title = (el.textContent || '').trim();
        if (!title || title.length > 100) {
            const titleEl = el.querySelector('[class*="title"], h2, h3, span');
            if (titleEl) title = (titleEl.textContent || '').trim();
        }
        seen.add(match[1]);
        notebooks.push({ id: match[1], title: title || 'Untitled', url: href });
    });
    document.querySelectorAll('project-button.project-button').forEach((btn, index) => {
        const titleEl = btn.querySelector('span.project-button-title, .project-button-title');
        const title = titleEl ? (titleEl.textContent || '').trim() : '';
        if (!title || seen.has(title)) return;
        seen.add(title);
        notebooks.push({ id: null, title: title, url: '', cardIndex: index });
    });
    return notebooks;
}
"""

# Card titles that belong to the "create notebook" affordance, not a notebook.
CREATE_CARD_MARKERS = ("새 노트", "만들기", "Create new", "New notebook")


class LocationKind(enum.Enum):
    LIST = "list"
    INSIDE_CONTAINER = "insideContainer"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TargetSessionState:
    location_kind: LocationKind
    container_id: Optional[str] = None
    auth_token: Optional[str] = None
    container_title: Optional[str] = None
    url: str = ""

    @property
    def inside_container(self) -> bool:
        return self.location_kind is LocationKind.INSIDE_CONTAINER and bool(self.container_id)

    def not_ready_reason(self, need_token: bool = False) -> Optional[str]:
        """Describe the unmet precondition, or None when delivery can proceed."""
        if not self.inside_container:
            return "no notebook is open"
        if need_token and not self.auth_token:
            return "session token not found on page"
        return None


@dataclass(frozen=True)
class ContainerInfo:
    id: Optional[str]
    title: str
    url: str = ""


def classify_location(url: str, base_url: str = NOTEBOOKLM_URL) -> Tuple[LocationKind, Optional[str]]:
    """Classify a page URL as the notebook list, a notebook, or something else."""
    parsed = urlparse(url or "")
    base_host = urlparse(base_url).netloc
    if base_host and parsed.netloc and parsed.netloc != base_host:
        return LocationKind.UNKNOWN, None

    path = parsed.path
    if path in ("", "/"):
        return LocationKind.LIST, None

    match = NOTEBOOK_PATH_RE.search(path)
    if match:
        return LocationKind.INSIDE_CONTAINER, match.group(1)
    return LocationKind.UNKNOWN, None


def find_token_in_scripts(script_texts: List[str]) -> Optional[str]:
    for text in script_texts:
        match = SCRIPT_TOKEN_RE.search(text or "")
        if match:
            return match.group(1)
    return None


def find_token_in_markup(markup: str) -> Optional[str]:
    for pattern in MARKUP_TOKEN_RES:
        match = pattern.search(markup or "")
        if match:
            return match.group(1)
    return None


class TargetSessionLocator:
    """Read-only view over the page hosting NotebookLM."""

    def __init__(self, page, base_url: str = NOTEBOOKLM_URL):
        self.page = page
        self.base_url = base_url

    def current_state(self) -> TargetSessionState:
        url = self.page.url
        kind, container_id = classify_location(url, self.base_url)
        if kind is not LocationKind.INSIDE_CONTAINER:
            return TargetSessionState(location_kind=kind, url=url)

        return TargetSessionState(
            location_kind=kind,
            container_id=container_id,
            auth_token=self.extract_auth_token(),
            container_title=self.container_title(),
            url=url,
        )

    def extract_auth_token(self) -> Optional[str]:
        token = find_token_in_scripts(self.page.evaluate(SCRIPT_TEXTS_JS) or [])
        if token:
            return token

        token = self.page.evaluate(GLOBAL_TOKEN_JS)
        if token:
            return str(token)

        token = find_token_in_markup(self.page.content())
        if token:
            return token

        logger.info("No session token found on the NotebookLM page")
        return None

    def container_title(self) -> Optional[str]:
        return self.page.evaluate(NOTEBOOK_TITLE_JS)

    def list_containers(self) -> List[ContainerInfo]:
        raw: List[Dict] = self.page.evaluate(LIST_NOTEBOOKS_JS) or []
        notebooks = []
        for item in raw:
            title = (item.get("title") or "").strip()
            if any(marker in title for marker in CREATE_CARD_MARKERS):
                continue
            url = item.get("url") or ""
            if url.startswith("/"):
                url = self.base_url.rstrip("/") + url
            notebooks.append(ContainerInfo(id=item.get("id"), title=title, url=url))
        return notebooks
