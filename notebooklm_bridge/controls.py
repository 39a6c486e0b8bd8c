"""
Control table for the NotebookLM UI.

Maps each purpose to an ordered list of candidate matchers (first match wins).
Labels cover the Korean and English interfaces. When NotebookLM changes its
markup, update this table rather than the simulation steps.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

# Matcher kinds understood by the in-page locator script.
CSS = "css"
TEXT_EXACT = "text_exact"
TEXT_CONTAINS = "text_contains"
PLACEHOLDER_CONTAINS = "placeholder_contains"
DIALOG_TEXT = "dialog_text"

DIALOG_SCOPE = ".upload-dialog-panel, mat-bottom-sheet-container, mat-dialog-container, [role=\"dialog\"]"
TAB_TAGS = (
    '[role="tab"], button[class*="tab"], mat-tab-header button, .mat-mdc-tab, '
    'nav button, nav a, [class*="nav"] button, [class*="bottom-nav"] *, [class*="tab-bar"] *'
)
FIELD_TAGS = 'textarea, input[type="url"], input[type="text"], [contenteditable="true"]'


@dataclass(frozen=True)
class Matcher:
    kind: str
    value: str
    tags: Optional[str] = None

    def to_arg(self) -> Dict[str, Optional[str]]:
        return {"kind": self.kind, "value": self.value, "tags": self.tags}


@dataclass(frozen=True)
class ControlSpec:
    purpose: str
    matchers: Tuple[Matcher, ...]
    scope: Optional[str] = None
    visible_only: bool = True
    skip_disabled: bool = False

    def to_arg(self, scope: Optional[str] = None) -> Dict:
        return {
            "purpose": self.purpose,
            "matchers": [m.to_arg() for m in self.matchers],
            "scope": scope or self.scope,
            "visibleOnly": self.visible_only,
            "skipDisabled": self.skip_disabled,
        }


def css(selector: str) -> Matcher:
    return Matcher(CSS, selector)


def exact(label: str, tags: Optional[str] = None) -> Matcher:
    return Matcher(TEXT_EXACT, label, tags)


def contains(label: str, tags: Optional[str] = None) -> Matcher:
    return Matcher(TEXT_CONTAINS, label, tags)


def placeholder(fragment: str) -> Matcher:
    return Matcher(PLACEHOLDER_CONTAINS, fragment, "textarea, input")


def dialog_text(fragment: str) -> Matcher:
    return Matcher(DIALOG_TEXT, fragment, 'mat-dialog-container, [role="dialog"], .cdk-overlay-pane')


SOURCES_TAB = ControlSpec(
    purpose="sources_tab",
    matchers=(
        contains("출처", TAB_TAGS),
        contains("소스", TAB_TAGS),
        contains("sources", TAB_TAGS),
    ),
)

ADD_SOURCE = ControlSpec(
    purpose="add_source",
    matchers=(
        css("button.add-source-button"),
        css('button[aria-label="출처 추가"]'),
        css('button[aria-label="소스 추가"]'),
        css('button[aria-label="업로드 소스 대화상자 열기"]'),
        css('button[aria-label="Add source"]'),
        css("button.upload-button"),
        css("button.upload-icon-button"),
        contains("소스 추가", "button"),
        contains("소스 업로드", "button"),
        contains("Add source", "button"),
        exact("upload", "button"),
    ),
    skip_disabled=True,
)

TEXT_OPTION = ControlSpec(
    purpose="text_option",
    matchers=(exact("복사된 텍스트"), exact("Copied text")),
    visible_only=False,
)

TEXT_SUBMENU = ControlSpec(
    purpose="text_submenu",
    matchers=(exact("텍스트 붙여넣기"), exact("Paste text")),
    visible_only=False,
)

LINK_OPTION = ControlSpec(
    purpose="link_option",
    matchers=(
        exact("웹사이트", "span, div, button, a"),
        exact("Website", "span, div, button, a"),
    ),
    visible_only=False,
)

LINK_SUBMENU = ControlSpec(
    purpose="link_submenu",
    matchers=(exact("링크"), exact("Link")),
    visible_only=False,
)

TEXT_FIELD = ControlSpec(
    purpose="text_field",
    matchers=(
        css("textarea.text-area"),
        css(".upload-dialog-panel textarea"),
        css('[role="dialog"] textarea'),
        css("mat-dialog-container textarea"),
    ),
)

LINK_FIELD = ControlSpec(
    purpose="link_field",
    matchers=(
        dialog_text("웹사이트 URL"),
        dialog_text("URL 붙여넣기"),
        dialog_text("Website URL"),
        dialog_text("Paste URL"),
        placeholder("url"),
        placeholder("붙여넣기"),
        css("textarea"),
    ),
)

CREATE_NOTEBOOK = ControlSpec(
    purpose="create_notebook",
    matchers=(
        css('button[aria-label*="만들기"]'),
        css('button[aria-label*="Create"]'),
        contains("새 노트 만들기", "button, mat-card, project-button"),
        contains("Create new", "button, mat-card, project-button"),
        contains("만들기", "button"),
        contains("create", "button"),
        contains("New notebook", "button"),
    ),
    skip_disabled=True,
)

CONFIRM = ControlSpec(
    purpose="confirm",
    matchers=(exact("삽입", "button"), exact("Insert", "button")),
    visible_only=False,
)

CONTROLS: Dict[str, ControlSpec] = {
    spec.purpose: spec
    for spec in (
        SOURCES_TAB,
        ADD_SOURCE,
        TEXT_OPTION,
        TEXT_SUBMENU,
        LINK_OPTION,
        LINK_SUBMENU,
        TEXT_FIELD,
        LINK_FIELD,
        CONFIRM,
        CREATE_NOTEBOOK,
    )
}
