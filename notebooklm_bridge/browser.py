"""
Browser session hosting NotebookLM.

A persistent Chromium profile keeps the user's Google login between runs; the
bridge never signs in on its own. Only this class navigates the page.
"""

import logging
import re
import time
from pathlib import Path
from typing import Callable, Optional

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from notebooklm_bridge.controls import CREATE_NOTEBOOK
from notebooklm_bridge.errors import NotebookCreationFailed
from notebooklm_bridge.polling import poll
from notebooklm_bridge.session import NOTEBOOKLM_URL, LocationKind, classify_location
from notebooklm_bridge.simulation import FIND_CONTROL_JS

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-first-run",
    "--no-default-browser-check",
]
VIEWPORT = {"width": 1920, "height": 1080}
NOTEBOOK_URL_RE = re.compile(r"/notebook/[^/?#]+")


class BrowserSession:
    def __init__(
        self,
        profile_dir: str,
        base_url: str = NOTEBOOKLM_URL,
        headless: bool = False,
        navigation_timeout: float = 30,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.profile_dir = Path(profile_dir).expanduser()
        self.base_url = base_url
        self.headless = headless
        self.navigation_timeout = navigation_timeout
        self.sleep = sleep
        self._playwright = None
        self._context = None
        self.page = None

    def open(self):
        if self.page is not None:
            return self.page
        self.profile_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Starting Chromium with profile {self.profile_dir}")
        self._playwright = sync_playwright().start()
        self._context = self._playwright.chromium.launch_persistent_context(
            user_data_dir=str(self.profile_dir),
            headless=self.headless,
            args=LAUNCH_ARGS,
            ignore_default_args=["--enable-automation"],
            viewport=VIEWPORT,
        )
        self._context.set_default_timeout(self.navigation_timeout * 1000)
        self.page = self._context.pages[0] if self._context.pages else self._context.new_page()
        return self.page

    def close(self) -> None:
        if self._context is not None:
            self._context.close()
        if self._playwright is not None:
            self._playwright.stop()
        self._context = None
        self._playwright = None
        self.page = None

    def __enter__(self) -> "BrowserSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open_home(self) -> None:
        self._goto(self.base_url)

    def open_container(self, container_id: str) -> None:
        self._goto(f"{self.base_url.rstrip('/')}/notebook/{container_id}")

    def create_container(self, lookup_attempts: int = 10, settle: float = 1.5) -> str:
        """
        Create a notebook from the home page and return its id.

        Clicks the "create notebook" card, then waits for the browser to land on
        ``/notebook/<id>``. NotebookLM opens a fresh notebook with its upload
        dialog showing; it is closed so deliveries start from the notebook view.

        Raises:
            NotebookCreationFailed: no create control, or no notebook page before the timeout.
        """
        if self.page is None:
            self.open()
        if classify_location(self.page.url, self.base_url)[0] is not LocationKind.LIST:
            self.open_home()

        def click_create():
            arg = CREATE_NOTEBOOK.to_arg()
            arg["action"] = "click"
            result = self.page.evaluate(FIND_CONTROL_JS, arg) or {}
            return result if result.get("found") and not result.get("disabled") else None

        clicked = poll(click_create, interval=0.5, attempts=lookup_attempts, sleep=self.sleep, wait_first=False)
        if clicked is None:
            raise NotebookCreationFailed("Create notebook button not found on the home page")
        logger.info(f"Clicked create notebook via {clicked.get('matcher')}")

        try:
            self.page.wait_for_url(NOTEBOOK_URL_RE, timeout=self.navigation_timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise NotebookCreationFailed(f"New notebook did not open: {e}") from e

        kind, container_id = classify_location(self.page.url, self.base_url)
        if kind is not LocationKind.INSIDE_CONTAINER:
            raise NotebookCreationFailed(f"Unexpected page after creating a notebook: {self.page.url}")

        self.sleep(settle)
        self.page.keyboard.press("Escape")
        logger.info(f"Created notebook {container_id}")
        return container_id

    def wait_for_login(self, timeout: Optional[float] = None) -> None:
        """Block until the page is on NotebookLM itself (not the Google sign-in flow)."""
        host = self.base_url.split("//", 1)[-1].rstrip("/")
        timeout_ms = (timeout if timeout is not None else self.navigation_timeout) * 1000
        self.page.wait_for_url(f"**{host}/**", timeout=timeout_ms)

    def _goto(self, url: str) -> None:
        if self.page is None:
            self.open()
        logger.info(f"Opening {url}")
        self.page.goto(url, wait_until="domcontentloaded")
