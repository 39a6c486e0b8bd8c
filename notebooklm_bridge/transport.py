"""
Client for the local control-plane server that the note application runs.

The server owns a remote queue of notes; the bridge pulls them into its own
DeliveryQueue and completes the remote item once delivery succeeds.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from notebooklm_bridge.delivery_queue import DeliveryQueue
from notebooklm_bridge.errors import TransportError, TransportUnavailable
from notebooklm_bridge.records import ContentRecord

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 27123

COMPLETED = "completed"
NOT_FOUND = "notFound"


@dataclass
class RemoteItem:
    id: str
    record: ContentRecord
    timestamp: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteItem":
        return cls(
            id=str(data["id"]),
            record=ContentRecord.from_dict(data.get("note") or {}),
            timestamp=data.get("timestamp"),
        )


class TransportClient:
    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, timeout: float = 5):
        self.base_url = f"http://{host}:{port}"
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            resp = requests.request(method, url, timeout=self.timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransportUnavailable(f"Local server not reachable at {self.base_url}: {e}") from e
        if resp.status_code == 404:
            return resp
        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        return resp

    @staticmethod
    def _json(resp: requests.Response, path: str) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"Unreadable response from {path}: {e}") from e

    def status(self) -> Dict[str, Any]:
        return self._json(self._request("GET", "/status"), "/status")

    def queue_size(self) -> int:
        return int(self.status().get("queueSize") or 0)

    def list_queue(self) -> List[RemoteItem]:
        """Remote items in order. Items that cannot be read are logged and skipped."""
        data = self._json(self._request("GET", "/queue"), "/queue")
        items = []
        for raw in data.get("notes", []):
            try:
                items.append(RemoteItem.from_dict(raw))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                item_id = raw.get("id", "?") if isinstance(raw, dict) else "?"
                logger.warning(f"Skipping unreadable queued note {item_id}: {e}")
        return items

    def pop(self) -> Optional[RemoteItem]:
        """Take the next pending item, or None when the remote queue is empty."""
        resp = self._request("POST", "/queue/pop")
        if resp.status_code == 404:
            return None
        data = self._json(resp, "/queue/pop")
        try:
            return RemoteItem.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"Unreadable note from /queue/pop: {e}") from e

    def complete(self, item_id: str) -> str:
        """Remove an item from the remote queue. Completing an absent id reports notFound."""
        resp = self._request("POST", f"/queue/complete/{item_id}")
        if resp.status_code == 404:
            logger.debug(f"Remote queue has no item {item_id}")
            return NOT_FOUND
        return COMPLETED

    def clear(self) -> None:
        self._request("POST", "/queue/clear")

    def submit(self, record: ContentRecord) -> Optional[str]:
        resp = self._request("POST", "/queue", json=record.to_dict())
        try:
            return resp.json().get("id")
        except ValueError:
            return None

    def current_note(self) -> Optional[ContentRecord]:
        resp = self._request("GET", "/current-note")
        if resp.status_code == 404:
            return None
        data = self._json(resp, "/current-note")
        try:
            return ContentRecord.from_dict(data)
        except ValueError as e:
            raise TransportError(f"Unreadable note from /current-note: {e}") from e


def pull_pending(client: TransportClient, queue: DeliveryQueue) -> Dict[str, str]:
    """Copy every readable remote item into ``queue``. Returns local entry id -> remote item id."""
    mapping = {}
    for item in client.list_queue():
        entry_id = queue.enqueue(item.record)
        mapping[entry_id] = item.id
    if mapping:
        logger.info(f"Pulled {len(mapping)} note(s) from the local server")
    return mapping


def acknowledge(client: TransportClient, mapping: Dict[str, str], entry_id: str) -> Optional[str]:
    remote_id = mapping.pop(entry_id, None)
    if remote_id is None:
        return None
    return client.complete(remote_id)
