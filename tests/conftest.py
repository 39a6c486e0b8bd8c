import pytest
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from notebooklm_bridge.notifier import Notifier
from notebooklm_bridge.records import ContentRecord
from notebooklm_bridge.session import LocationKind, TargetSessionState
from notebooklm_bridge.simulation import FILL_FIELD_JS, FIND_CONTROL_JS, SCROLL_DIALOG_JS

NOTEBOOK_URL = "https://notebooklm.google.com/notebook/nb-123"


class FakeKeyboard:
    def __init__(self):
        self.pressed = []

    def press(self, key):
        self.pressed.append(key)


class FakePage:
    """Stands in for a Playwright Page. Scripts are answered by registered handlers."""

    def __init__(self, url=NOTEBOOK_URL, html=""):
        self.url = url
        self.html = html
        self.calls = []
        self.handlers = {}
        self.keyboard = FakeKeyboard()
        self.visited = []

    def on(self, script, handler):
        self.handlers[script] = handler

    def evaluate(self, script, arg=None):
        self.calls.append((script, arg))
        handler = self.handlers.get(script)
        if callable(handler):
            return handler(arg)
        return handler

    def content(self):
        return self.html

    def goto(self, url, wait_until=None):
        self.visited.append(url)
        self.url = url

    def wait_for_url(self, pattern, timeout=None):
        if not pattern.search(self.url):
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {pattern.pattern}")

    def calls_to(self, script):
        return [arg for s, arg in self.calls if s == script]


class FakeSourcesUI:
    """Minimal model of the add-source dialog, answering the control lookup scripts."""

    SUBMENUS = {"text_option": "text_submenu", "link_option": "link_submenu"}

    def __init__(self, page, missing=(), disabled=(), nested=False):
        self.missing = set(missing)
        self.disabled = set(disabled)
        self.nested = nested
        self.clicked = []
        self.filled = {}
        page.on(FIND_CONTROL_JS, self.find)
        page.on(FILL_FIELD_JS, self.fill)
        page.on(SCROLL_DIALOG_JS, True)

    def _present(self, purpose):
        if purpose in self.missing:
            return False
        if self.nested and purpose in self.SUBMENUS:
            return self.SUBMENUS[purpose] in self.clicked
        return True

    def find(self, arg):
        purpose = arg["purpose"]
        if not self._present(purpose):
            return {"found": False, "disabled": False, "label": "", "matcher": ""}
        disabled = purpose in self.disabled
        if arg["action"] == "click" and not disabled:
            self.clicked.append(purpose)
        return {"found": True, "disabled": disabled, "label": purpose, "matcher": "fake"}

    def fill(self, arg):
        purpose = arg["purpose"]
        if not self._present(purpose):
            return {"found": False, "matcher": ""}
        self.filled[purpose] = arg["value"]
        return {"found": True, "matcher": "fake"}


class RecordingNotifier(Notifier):
    def __init__(self):
        self.messages = []

    def notify(self, message, level=None):
        self.messages.append((message, level))

    @property
    def terminal(self):
        return [(m, level) for m, level in self.messages if level is not None and level.terminal]


@pytest.fixture
def page():
    return FakePage()


@pytest.fixture
def ready_session():
    return TargetSessionState(
        location_kind=LocationKind.INSIDE_CONTAINER,
        container_id="nb-123",
        auth_token="AF1_token",
        url=NOTEBOOK_URL,
    )


@pytest.fixture
def record():
    return ContentRecord(title="Meeting Notes", body="Agenda and decisions.")


@pytest.fixture
def link_record():
    return ContentRecord(title="Design doc", body="Summary", external_link="https://example.com/doc")


@pytest.fixture
def no_sleep():
    return lambda seconds: None
