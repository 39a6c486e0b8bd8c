import pytest
from conftest import NOTEBOOK_URL, FakePage, FakeSourcesUI, RecordingNotifier

from notebooklm_bridge.delivery_queue import DeliveryQueue, EntryStatus
from notebooklm_bridge.dispatcher import DispatchStatus, Dispatcher, order_strategies
from notebooklm_bridge.errors import DispatchInProgress
from notebooklm_bridge.notifier import Level
from notebooklm_bridge.outcomes import Outcome, OutcomeKind, Step
from notebooklm_bridge.records import ContentRecord
from notebooklm_bridge.rpc import READ_SLOT_JS, SEND_RPC_JS, StructuralCallStrategy
from notebooklm_bridge.session import (
    SCRIPT_TEXTS_JS,
    LocationKind,
    TargetSessionLocator,
    TargetSessionState,
)
from notebooklm_bridge.simulation import InteractiveSimulationStrategy
from notebooklm_bridge.strategy import DeliveryStrategy

OK_TEXT = '[["wrb.fr","izAoDd","[]",null,null,null,"generic"]]'


class FakeStrategy(DeliveryStrategy):
    def __init__(self, name, *outcomes):
        self.name = name
        self.outcomes = list(outcomes)
        self.seen = []

    def attempt(self, record, session):
        self.seen.append((record.title, session))
        result = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeLocator:
    def __init__(self, inside=True):
        self.inside = inside
        self.calls = 0

    def current_state(self):
        self.calls += 1
        if not self.inside:
            return TargetSessionState(LocationKind.LIST)
        return TargetSessionState(
            LocationKind.INSIDE_CONTAINER, container_id="nb-123", auth_token=f"tok-{self.calls}"
        )


class FakeClipboard:
    def __init__(self, succeed=True):
        self.succeed = succeed
        self.copied = []

    def copy_to_clipboard(self, record):
        self.copied.append(record.title)
        return self.succeed


def make_dispatcher(queue, *strategies, locator=None, clipboard=None, notifier=None):
    return Dispatcher(
        queue=queue,
        locator=locator or FakeLocator(),
        strategies=list(strategies),
        clipboard=clipboard or FakeClipboard(),
        notifier=notifier or RecordingNotifier(),
    )


def test_empty_queue():
    result = make_dispatcher(DeliveryQueue(), FakeStrategy("api", Outcome.delivered())).dispatch_next()
    assert result.status is DispatchStatus.EMPTY


def test_first_strategy_delivers(record):
    queue = DeliveryQueue()
    entry_id = queue.enqueue(record)
    api = FakeStrategy("api", Outcome.delivered())
    dom = FakeStrategy("dom", Outcome.delivered())
    notifier = RecordingNotifier()

    result = make_dispatcher(queue, api, dom, notifier=notifier).dispatch_next()

    assert result.status is DispatchStatus.DELIVERED
    assert result.strategy == "api"
    assert entry_id not in queue
    assert dom.seen == []
    assert notifier.terminal == [('"Meeting Notes" added as a source.', Level.SUCCESS)]


def test_falls_back_with_fresh_session(record):
    queue = DeliveryQueue()
    queue.enqueue(record)
    api = FakeStrategy("api", Outcome.not_ready("session token not found on page"))
    dom = FakeStrategy("dom", Outcome.delivered())
    locator = FakeLocator()
    notifier = RecordingNotifier()

    result = make_dispatcher(queue, api, dom, locator=locator, notifier=notifier).dispatch_next()

    assert result.status is DispatchStatus.DELIVERED
    assert result.strategy == "dom"
    assert [name for name, _ in result.attempts] == ["api", "dom"]
    assert api.seen[0][1].auth_token == "tok-1"
    assert dom.seen[0][1].auth_token == "tok-2"
    assert len(notifier.terminal) == 1


def test_strategy_order_is_configurable(record):
    queue = DeliveryQueue()
    queue.enqueue(record)
    api = FakeStrategy("api", Outcome.delivered())
    dom = FakeStrategy("dom", Outcome.delivered())

    result = make_dispatcher(queue, *order_strategies([api, dom], "dom")).dispatch_next()

    assert result.strategy == "dom"
    assert api.seen == []


def test_unknown_preferred_strategy():
    with pytest.raises(ValueError):
        order_strategies([FakeStrategy("api", Outcome.delivered())], "carrier-pigeon")


def test_both_fail_goes_to_clipboard(record):
    queue = DeliveryQueue()
    entry_id = queue.enqueue(record)
    clipboard = FakeClipboard()
    notifier = RecordingNotifier()

    result = make_dispatcher(
        queue,
        FakeStrategy("api", Outcome.endpoint_error(400)),
        FakeStrategy("dom", Outcome.not_found(Step.OPEN_ADD_DIALOG)),
        clipboard=clipboard,
        notifier=notifier,
    ).dispatch_next()

    assert result.status is DispatchStatus.CLIPBOARD
    assert clipboard.copied == ["Meeting Notes"]
    assert queue.get(entry_id).status is EntryStatus.FAILED
    assert queue.size() == 0
    assert len(notifier.terminal) == 1
    assert notifier.terminal[0][1] is Level.WARNING
    assert "clipboard" in notifier.terminal[0][0]


def test_clipboard_failure_is_reported(record):
    queue = DeliveryQueue()
    queue.enqueue(record)
    notifier = RecordingNotifier()

    result = make_dispatcher(
        queue,
        FakeStrategy("api", Outcome.timeout()),
        clipboard=FakeClipboard(succeed=False),
        notifier=notifier,
    ).dispatch_next()

    assert result.status is DispatchStatus.FAILED
    assert notifier.terminal == [('Failed to add "Meeting Notes".', Level.ERROR)]


def test_strategy_exception_triggers_fallback(record):
    queue = DeliveryQueue()
    queue.enqueue(record)

    result = make_dispatcher(
        queue,
        FakeStrategy("api", RuntimeError("page crashed")),
        FakeStrategy("dom", Outcome.delivered()),
    ).dispatch_next()

    assert result.status is DispatchStatus.DELIVERED
    first = result.attempts[0][1]
    assert first.kind is OutcomeKind.ERROR
    assert "page crashed" in first.reason


def test_partial_is_a_hand_off(record):
    queue = DeliveryQueue()
    entry_id = queue.enqueue(record)
    dom = FakeStrategy("dom", Outcome.partial(Step.CONFIRM))
    other = FakeStrategy("api", Outcome.delivered())
    notifier = RecordingNotifier()

    result = make_dispatcher(queue, dom, other, notifier=notifier).dispatch_next()

    assert result.status is DispatchStatus.PARTIAL
    assert entry_id not in queue
    assert other.seen == []
    assert len(notifier.terminal) == 1
    assert "Insert" in notifier.terminal[0][0]


def test_not_ready_keeps_entry(record):
    queue = DeliveryQueue()
    entry_id = queue.enqueue(record)
    api = FakeStrategy("api", Outcome.delivered())
    notifier = RecordingNotifier()

    result = make_dispatcher(queue, api, locator=FakeLocator(inside=False), notifier=notifier).dispatch_next()

    assert result.status is DispatchStatus.NOT_READY
    assert queue.get(entry_id).status is EntryStatus.PENDING
    assert api.seen == []
    assert len(notifier.terminal) == 1


def test_dispatch_all_is_fifo():
    queue = DeliveryQueue()
    for title in ("one", "two", "three"):
        queue.enqueue(ContentRecord(title=title))
    api = FakeStrategy("api", Outcome.delivered())

    results = make_dispatcher(queue, api).dispatch_all()

    assert [title for title, _ in api.seen] == ["one", "two", "three"]
    assert all(r.status is DispatchStatus.DELIVERED for r in results)
    assert queue.size() == 0


def test_dispatch_all_continues_past_failures():
    queue = DeliveryQueue()
    for title in ("one", "two"):
        queue.enqueue(ContentRecord(title=title))
    api = FakeStrategy("api", Outcome.timeout(), Outcome.delivered())

    results = make_dispatcher(queue, api).dispatch_all()

    assert [r.status for r in results] == [DispatchStatus.CLIPBOARD, DispatchStatus.DELIVERED]
    assert queue.size() == 0
    assert len(queue.failed()) == 1


def test_dispatch_all_stops_when_not_ready():
    queue = DeliveryQueue()
    queue.enqueue(ContentRecord(title="one"))
    queue.enqueue(ContentRecord(title="two"))

    results = make_dispatcher(
        queue, FakeStrategy("api", Outcome.delivered()), locator=FakeLocator(inside=False)
    ).dispatch_all()

    assert [r.status for r in results] == [DispatchStatus.NOT_READY]
    assert queue.size() == 2


def test_reentrant_dispatch_is_rejected(record):
    queue = DeliveryQueue()
    queue.enqueue(record)
    queue.enqueue(ContentRecord(title="second"))
    captured = []

    class Reentrant(DeliveryStrategy):
        name = "api"

        def attempt(self, rec, session):
            with pytest.raises(DispatchInProgress):
                dispatcher.dispatch_next()
            captured.append(rec.title)
            return Outcome.delivered()

    dispatcher = make_dispatcher(queue, Reentrant())
    dispatcher.dispatch_next()

    assert captured == ["Meeting Notes"]
    assert queue.size() == 1


def test_scenario_direct_call_delivers(no_sleep):
    page = FakePage(url=NOTEBOOK_URL)
    page.on(SCRIPT_TEXTS_JS, ['{"SNlM0e":"AF1_tok"}'])
    page.on(SEND_RPC_JS, True)
    page.on(READ_SLOT_JS, {"pending": False, "status": 200, "text": OK_TEXT})
    queue = DeliveryQueue()
    entry_id = queue.enqueue(ContentRecord(title="Meeting Notes", body="..."))

    result = Dispatcher(
        queue,
        TargetSessionLocator(page),
        [StructuralCallStrategy(page, sleep=no_sleep), InteractiveSimulationStrategy(page, sleep=no_sleep)],
        clipboard=FakeClipboard(),
        notifier=RecordingNotifier(),
    ).dispatch_next()

    assert result.status is DispatchStatus.DELIVERED
    assert result.strategy == "api"
    assert entry_id not in queue


def test_scenario_missing_token_uses_ui(no_sleep):
    page = FakePage(url=NOTEBOOK_URL)
    ui = FakeSourcesUI(page)
    queue = DeliveryQueue()
    queue.enqueue(ContentRecord(title="Meeting Notes", body="..."))

    result = Dispatcher(
        queue,
        TargetSessionLocator(page),
        [StructuralCallStrategy(page, sleep=no_sleep), InteractiveSimulationStrategy(page, sleep=no_sleep)],
        clipboard=FakeClipboard(),
        notifier=RecordingNotifier(),
    ).dispatch_next()

    assert result.attempts[0][1].kind is OutcomeKind.NOT_READY
    assert page.calls_to(SEND_RPC_JS) == []
    assert result.strategy == "dom"
    assert "confirm" in ui.clicked


def test_scenario_ui_not_found_goes_to_clipboard(no_sleep):
    page = FakePage(url=NOTEBOOK_URL)
    FakeSourcesUI(page, missing={"add_source"})
    queue = DeliveryQueue()
    entry_id = queue.enqueue(ContentRecord(title="Meeting Notes", body="..."))
    clipboard = FakeClipboard()
    notifier = RecordingNotifier()

    result = Dispatcher(
        queue,
        TargetSessionLocator(page),
        [StructuralCallStrategy(page, sleep=no_sleep), InteractiveSimulationStrategy(page, sleep=no_sleep)],
        clipboard=clipboard,
        notifier=notifier,
    ).dispatch_next()

    dom_outcome = result.attempts[-1][1]
    assert dom_outcome.kind is OutcomeKind.NOT_FOUND
    assert dom_outcome.step is Step.OPEN_ADD_DIALOG
    assert result.status is DispatchStatus.CLIPBOARD
    assert clipboard.copied == ["Meeting Notes"]
    assert queue.get(entry_id).status is EntryStatus.FAILED
    assert len(notifier.terminal) == 1


def test_dispatch_all_stops_after_partial_hand_off(no_sleep):
    page = FakePage(url=NOTEBOOK_URL)
    ui = FakeSourcesUI(page, disabled={"confirm"})
    queue = DeliveryQueue()
    first = queue.enqueue(ContentRecord(title="First", body="one"))
    second = queue.enqueue(ContentRecord(title="Second", body="two"))
    notifier = RecordingNotifier()

    results = Dispatcher(
        queue,
        TargetSessionLocator(page),
        [InteractiveSimulationStrategy(page, sleep=no_sleep)],
        clipboard=FakeClipboard(),
        notifier=notifier,
    ).dispatch_all()

    assert [r.status for r in results] == [DispatchStatus.PARTIAL]
    assert first not in queue
    assert queue.get(second).status is EntryStatus.PENDING
    assert ui.filled["text_field"] == "# First\n\none"
    assert len(notifier.terminal) == 1
