"""
UI-driving strategy: add a source by operating NotebookLM's own controls.

Steps run in a fixed order, each followed by a settle delay, because the page
renders asynchronously and exposes no events to wait on:

    EnsureSourcesPanel -> OpenAddDialog -> SelectSourceType -> PopulateField -> Confirm

Which elements to use comes from the control table in ``controls``.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from notebooklm_bridge.controls import CONTROLS, DIALOG_SCOPE, ControlSpec
from notebooklm_bridge.outcomes import Outcome, OutcomeKind, Step
from notebooklm_bridge.polling import poll
from notebooklm_bridge.records import ContentRecord
from notebooklm_bridge.session import TargetSessionState
from notebooklm_bridge.strategy import DeliveryStrategy, format_text_source

logger = logging.getLogger(__name__)

_LOCATE = """
    const textOf = (el) => (el.textContent || '').trim();
    const isVisible = (el) => el.offsetParent !== null || el.getClientRects().length > 0;
    const all = (root, sel) => Array.from(root.querySelectorAll(sel));
    const locate = (m, root) => {
        const tags = m.tags || '*';
        switch (m.kind) {
            case 'css':
                return all(root, m.value);
            case 'text_exact':
                return all(root, tags).filter(el => textOf(el) === m.value);
            case 'text_contains':
                return all(root, tags).filter(el => textOf(el).toLowerCase().includes(m.value.toLowerCase()));
            case 'placeholder_contains':
                return all(root, tags).filter(el =>
                    (el.getAttribute('placeholder') || '').toLowerCase().includes(m.value.toLowerCase()));
            case 'dialog_text':
                return all(root, tags)
                    .filter(d => (d.textContent || '').includes(m.value))
                    .flatMap(d => all(d, 'textarea, input[type="url"], input[type="text"]'));
        }
        return [];
    };
    const roots = args.scope ? all(document, args.scope) : [document];
    const first = (accept) => {
        for (const m of args.matchers) {
            for (const root of roots) {
                let found;
                try { found = locate(m, root); } catch (e) { continue; }
                for (const el of found) {
                    if (args.visibleOnly && !isVisible(el)) continue;
                    if (accept && !accept(el)) continue;
                    return { el, matcher: m.kind + ':' + m.value };
                }
            }
        }
        return null;
    };
    const isDisabled = (el) => !!el.disabled || el.getAttribute('aria-disabled') === 'true';
"""

FIND_CONTROL_JS = (
    "(args) => {"
    + _LOCATE
    + """
    const hit = first(args.skipDisabled ? (el) => !isDisabled(el) : null);
    if (!hit) return { found: false, disabled: false, label: '', matcher: '' };
    const disabled = isDisabled(hit.el);
    if (args.action === 'click' && !disabled) hit.el.click();
    if (args.action === 'scroll') hit.el.scrollIntoView({ block: 'center' });
    return { found: true, disabled: disabled, label: textOf(hit.el).substring(0, 80), matcher: hit.matcher };
}"""
)

FILL_FIELD_JS = (
    "(args) => {"
    + _LOCATE
    + """
    const hit = first(null);
    if (!hit) return { found: false, matcher: '' };
    const el = hit.el;
    el.focus();
    if (el.isContentEditable) {
        el.textContent = args.value;
    } else {
        const proto = el.tagName === 'TEXTAREA' ? HTMLTextAreaElement.prototype : HTMLInputElement.prototype;
        Object.getOwnPropertyDescriptor(proto, 'value').set.call(el, args.value);
    }
    el.dispatchEvent(new Event('input', { bubbles: true }));
    el.dispatchEvent(new Event('change', { bubbles: true }));
    el.dispatchEvent(new KeyboardEvent('keyup', { bubbles: true }));
    return { found: true, matcher: hit.matcher };
}"""
)

SCROLL_DIALOG_JS = """
() => {
    for (const sel of ['mat-bottom-sheet-container', '.upload-dialog-panel', '.cdk-overlay-pane']) {
        const el = document.querySelector(sel);
        if (!el) continue;
        el.scrollTop = el.scrollHeight;
        el.querySelectorAll('*').forEach(child => {
            const style = window.getComputedStyle(child);
            if (style.overflowY === 'auto' || style.overflowY === 'scroll') child.scrollTop = child.scrollHeight;
        });
    }
    return true;
}
"""


@dataclass
class SettleDelays:
    """Seconds to wait after each step for the page to re-render."""

    after_tab: float = 0.8
    after_open: float = 1.5
    after_scroll: float = 0.5
    between_selections: float = 0.8
    after_select: float = 1.5
    after_fill: float = 0.8
    after_confirm: float = 0.5

    def scaled(self, factor: float) -> "SettleDelays":
        return SettleDelays(**{k: v * factor for k, v in vars(self).items()})


class InteractiveSimulationStrategy(DeliveryStrategy):
    """Adds a source by clicking through the "add source" dialog."""

    name = "dom"

    def __init__(
        self,
        page,
        controls: Optional[Dict[str, ControlSpec]] = None,
        lookup_attempts: int = 5,
        lookup_interval: float = 0.5,
        delays: Optional[SettleDelays] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.page = page
        self.controls = controls or CONTROLS
        self.lookup_attempts = lookup_attempts
        self.lookup_interval = lookup_interval
        self.delays = delays or SettleDelays()
        self.sleep = sleep

    def attempt(self, record: ContentRecord, session: TargetSessionState) -> Outcome:
        reason = session.not_ready_reason()
        if reason:
            return Outcome.not_ready(reason)

        try:
            outcome = self._run(record)
        except Exception:
            self._dismiss_dialog()
            raise

        if outcome.kind is OutcomeKind.NOT_FOUND:
            logger.warning(f"UI delivery of '{record.title}' stopped: {outcome.describe()}")
            self._dismiss_dialog()
        return outcome

    def _run(self, record: ContentRecord) -> Outcome:
        link = record.is_link

        self._ensure_sources_panel()
        self.sleep(self.delays.after_tab)

        if not self._activate("add_source"):
            return Outcome.not_found(Step.OPEN_ADD_DIALOG)
        self.sleep(self.delays.after_open)

        if not self._select_source_type(link):
            return Outcome.not_found(Step.SELECT_SOURCE_TYPE)
        self.sleep(self.delays.after_select)

        field = "link_field" if link else "text_field"
        value = record.external_link if link else format_text_source(record)
        if not self._populate(field, value):
            return Outcome.not_found(Step.POPULATE_FIELD)
        self.sleep(self.delays.after_fill)

        confirm = self._lookup("confirm", action="click")
        if confirm is None:
            return Outcome.not_found(Step.CONFIRM)
        if confirm.get("disabled"):
            logger.info(f"Field populated for '{record.title}' but Insert is disabled")
            return Outcome.partial(Step.CONFIRM, "insert button disabled")
        self.sleep(self.delays.after_confirm)

        logger.info(f"Added source '{record.title}' through the UI")
        return Outcome.delivered()

    # -- steps --

    def _ensure_sources_panel(self) -> None:
        """Switch to the Sources tab on narrow layouts; no-op when the add button is visible."""
        if self._find("add_source", action="peek").get("found"):
            return
        result = self._find("sources_tab", action="click")
        if result.get("found"):
            logger.debug(f"Switched to sources tab ({result.get('label')})")

    def _select_source_type(self, link: bool) -> bool:
        option, submenu = ("link_option", "link_submenu") if link else ("text_option", "text_submenu")

        self.page.evaluate(SCROLL_DIALOG_JS)
        self._find(option, action="scroll")
        self.sleep(self.delays.after_scroll)

        # The option may be directly in the dialog or nested behind a section header.
        direct = self._find(option, action="click")
        if direct.get("found") and not direct.get("disabled"):
            return True
        if not self._activate(submenu):
            return False
        self.sleep(self.delays.between_selections)
        return self._activate(option, scope=DIALOG_SCOPE)

    def _populate(self, purpose: str, value: str) -> bool:
        spec = self.controls[purpose]

        def check():
            arg = spec.to_arg()
            arg["value"] = value
            result = self.page.evaluate(FILL_FIELD_JS, arg) or {}
            return result if result.get("found") else None

        return self._poll(check) is not None

    # -- lookup helpers --

    def _find(self, purpose: str, action: str, scope: Optional[str] = None) -> Dict:
        arg = self.controls[purpose].to_arg(scope)
        arg["action"] = action
        return self.page.evaluate(FIND_CONTROL_JS, arg) or {}

    def _lookup(self, purpose: str, action: str, scope: Optional[str] = None) -> Optional[Dict]:
        def check():
            result = self._find(purpose, action, scope)
            return result if result.get("found") else None

        return self._poll(check)

    def _activate(self, purpose: str, scope: Optional[str] = None) -> bool:
        result = self._lookup(purpose, "click", scope)
        if result is None:
            return False
        logger.debug(f"Clicked {purpose} via {result.get('matcher')}")
        return not result.get("disabled")

    def _poll(self, check):
        return poll(
            check,
            interval=self.lookup_interval,
            attempts=self.lookup_attempts,
            sleep=self.sleep,
            wait_first=False,
        )

    def _dismiss_dialog(self) -> None:
        try:
            self.page.keyboard.press("Escape")
        except Exception as e:
            logger.warning(f"Could not dismiss the add-source dialog: {e}")
