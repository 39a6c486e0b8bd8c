"""
Direct endpoint strategy: add a source through NotebookLM's private batchexecute RPC.

The request is sent from inside the page so the user's browser session applies.
The in-page XHR writes its result into a window slot which is polled from here.
The envelope shape was recovered from observed traffic; positions are significant.
"""

import json
import logging
import time
import uuid
from typing import Any, Callable, List, Optional
from urllib.parse import urlencode

from notebooklm_bridge.outcomes import Outcome
from notebooklm_bridge.polling import poll
from notebooklm_bridge.records import ContentRecord
from notebooklm_bridge.session import TargetSessionState
from notebooklm_bridge.strategy import DeliveryStrategy

logger = logging.getLogger(__name__)

RPC_ID = "izAoDd"
BATCHEXECUTE_PATH = "/_/LabsTailwindUi/data/batchexecute"
SUCCESS_MARKER = "wrb.fr"
ERROR_MARKER = '"er"'

TEXT_SOURCE_TYPE = 2
LINK_SOURCE_TYPE = 1

SEND_RPC_JS = """
({ url, body, slot }) => {
    window[slot] = { pending: true };
    const xhr = new XMLHttpRequest();
    xhr.open('POST', url, true);
    xhr.setRequestHeader('Content-Type', 'application/x-www-form-urlencoded;charset=UTF-8');
    xhr.withCredentials = true;
    xhr.onload = () => {
        window[slot] = { pending: false, status: xhr.status, text: (xhr.responseText || '').substring(0, 4000) };
    };
    xhr.onerror = () => {
        window[slot] = { pending: false, status: 0, text: '', error: 'network error' };
    };
    xhr.send(body);
    return true;
}
"""

READ_SLOT_JS = """
(slot) => {
    const r = window[slot];
    if (r && !r.pending) {
        delete window[slot];
        return r;
    }
    return null;
}
"""

CLEAR_SLOT_JS = """
(slot) => { delete window[slot]; return true; }
"""


def to_json(value: Any) -> str:
    """Serialize the way the browser's JSON.stringify does."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def build_text_payload(notebook_id: str, title: str, body: str) -> List[Any]:
    return [[[None, [title, body], None, TEXT_SOURCE_TYPE]], notebook_id]


def build_link_payload(notebook_id: str, url: str) -> List[Any]:
    source = [None, None, [url]] + [None] * 7 + [LINK_SOURCE_TYPE]
    options = [1] + [None] * 9 + [[1]]
    return [[source], notebook_id, [2], options]


def build_source_payload(record: ContentRecord, notebook_id: str) -> List[Any]:
    """Link payload whenever the record carries a link, regardless of its body."""
    if record.external_link:
        return build_link_payload(notebook_id, record.external_link)
    return build_text_payload(notebook_id, record.title, record.body)


def build_envelope(payload: List[Any], rpc_id: str = RPC_ID) -> List[Any]:
    return [[[rpc_id, to_json(payload), None, "generic"]]]


def encode_form(auth_token: str, envelope: List[Any]) -> str:
    return urlencode({"at": auth_token, "f.req": to_json(envelope)})


def classify_response(status: int, text: str, error: Optional[str] = None) -> Outcome:
    if status != 200:
        return Outcome.endpoint_error(status, error or f"HTTP {status}")
    if SUCCESS_MARKER not in (text or ""):
        return Outcome.endpoint_error(status, "response marker missing")
    if ERROR_MARKER in text.lower():
        return Outcome.endpoint_error(status, "error marker in response")
    return Outcome.delivered()


class StructuralCallStrategy(DeliveryStrategy):
    """Adds a text or link source with one authenticated batchexecute call."""

    name = "api"

    def __init__(
        self,
        page,
        poll_interval: float = 0.5,
        poll_attempts: int = 20,
        sleep: Callable[[float], None] = time.sleep,
        endpoint: str = BATCHEXECUTE_PATH,
    ):
        self.page = page
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts
        self.sleep = sleep
        self.endpoint = endpoint

    def attempt(self, record: ContentRecord, session: TargetSessionState) -> Outcome:
        reason = session.not_ready_reason(need_token=True)
        if reason:
            logger.info(f"Direct call skipped for '{record.title}': {reason}")
            return Outcome.not_ready(reason)

        payload = build_source_payload(record, session.container_id)
        body = encode_form(session.auth_token, build_envelope(payload))
        slot = f"__bridge_result_{uuid.uuid4().hex}"
        kind = "link" if record.is_link else "text"

        logger.info(f"Adding {kind} source '{record.title}' via {RPC_ID}")
        self.page.evaluate(
            SEND_RPC_JS,
            {"url": f"{self.endpoint}?rpcids={RPC_ID}", "body": body, "slot": slot},
        )

        result = poll(
            lambda: self.page.evaluate(READ_SLOT_JS, slot),
            interval=self.poll_interval,
            attempts=self.poll_attempts,
            sleep=self.sleep,
        )
        if result is None:
            self.page.evaluate(CLEAR_SLOT_JS, slot)
            waited = self.poll_interval * self.poll_attempts
            logger.warning(f"No response from {RPC_ID} after {waited:.1f}s")
            return Outcome.timeout(f"no response after {waited:.1f}s")

        outcome = classify_response(
            int(result.get("status") or 0), result.get("text") or "", result.get("error")
        )
        if not outcome.succeeded:
            preview = (result.get("text") or "")[:300]
            logger.warning(f"{RPC_ID} call failed ({outcome.describe()}): {preview}")
        return outcome
