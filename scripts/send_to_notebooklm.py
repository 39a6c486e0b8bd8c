#!/usr/bin/env python3
"""Send Markdown notes or text to a NotebookLM notebook as sources."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List

# Ensure notebooklm_bridge is importable
sys.path.append(str(Path(__file__).parent.parent))

from notebooklm_bridge.browser import BrowserSession
from notebooklm_bridge.clipboard import ClipboardFallback
from notebooklm_bridge.config import BridgeConfig, load_config
from notebooklm_bridge.delivery_queue import DeliveryQueue
from notebooklm_bridge.diagnostics import dump_page_inventory
from notebooklm_bridge.dispatcher import Dispatcher, DispatchStatus, order_strategies
from notebooklm_bridge.errors import BridgeError, TransportError, TransportUnavailable
from notebooklm_bridge.notes import MarkdownNoteSource, record_from_selection
from notebooklm_bridge.notifier import LogNotifier
from notebooklm_bridge.rpc import StructuralCallStrategy
from notebooklm_bridge.session import TargetSessionLocator
from notebooklm_bridge.simulation import InteractiveSimulationStrategy, SettleDelays
from notebooklm_bridge.transport import TransportClient, acknowledge, pull_pending

ROOT = Path(".").resolve()
LOGS_DIR = ROOT / "logs"
LOG_PATH = LOGS_DIR / "bridge.log"

LOGIN_TIMEOUT = 300


# Playwright and urllib3 chatter that is not useful on the console
class NoiseFilter(logging.Filter):
    def filter(self, record):
        msg = record.getMessage()
        if "Connection pool is full" in msg:
            return False
        if "Starting new HTTP connection" in msg:
            return False
        return True


def setup_logging(verbose: bool = False) -> None:
    LOGS_DIR.mkdir(exist_ok=True)
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    file_handler = logging.FileHandler(LOG_PATH, encoding="utf-8")
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    console.setLevel(logging.DEBUG if verbose else logging.INFO)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.addHandler(file_handler)
    root.addHandler(console)

    for logger_name in ["urllib3", "urllib3.connectionpool", "asyncio"]:
        logging.getLogger(logger_name).addFilter(NoiseFilter())
        logging.getLogger(logger_name).setLevel(logging.WARNING)


logger = logging.getLogger("send_to_notebooklm")


def build_dispatcher(page, queue: DeliveryQueue, config: BridgeConfig) -> Dispatcher:
    strategies = [
        StructuralCallStrategy(
            page,
            poll_interval=config.poll_interval,
            poll_attempts=config.poll_attempts,
        ),
        InteractiveSimulationStrategy(
            page,
            lookup_attempts=config.lookup_attempts,
            delays=SettleDelays().scaled(config.settle_scale),
        ),
    ]
    return Dispatcher(
        queue=queue,
        locator=TargetSessionLocator(page, config.base_url),
        strategies=order_strategies(strategies, config.preferred_method),
        clipboard=ClipboardFallback(),
        notifier=LogNotifier(),
    )


def collect_records(args, config: BridgeConfig, queue: DeliveryQueue) -> None:
    if args.note or args.current:
        if not config.vault_path:
            raise BridgeError("No vault configured. Set notes.vault_path or BRIDGE_VAULT_PATH.")
        source = MarkdownNoteSource(
            config.vault_path,
            include_frontmatter=config.include_frontmatter,
            include_metadata=config.include_metadata,
        )
        for identifier in args.note or []:
            record = source.read(identifier)
            if record is None:
                logger.warning(f"Skipping missing note: {identifier}")
                continue
            queue.enqueue(record)
        if args.current:
            record = source.read_current()
            if record is None:
                logger.warning("No notes found in the vault")
            else:
                queue.enqueue(record)

    if args.text:
        queue.enqueue(record_from_selection(args.text, args.title))


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--note", action="append", help="Vault-relative note path (repeatable)")
    parser.add_argument("--current", action="store_true", help="Send the most recently edited note")
    parser.add_argument("--text", help="Send this text as a pasted-text source")
    parser.add_argument("--title", help="Title for --text (default: Selection)")
    parser.add_argument("--from-server", action="store_true", help="Send everything queued on the local server")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--notebook", help="Notebook id to open before sending")
    target.add_argument("--new-notebook", action="store_true", help="Create a new notebook and send into it")
    parser.add_argument("--method", choices=["api", "dom"], help="Preferred delivery method")
    parser.add_argument("--list-notebooks", action="store_true", help="Print the notebooks on the home page")
    parser.add_argument("--dump-dom", action="store_true", help="Save a DOM inventory for debugging")
    parser.add_argument("--config", help="Path to config.yml")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        config = load_config(Path(args.config) if args.config else None, root=ROOT)
    except BridgeError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    if args.method:
        config.preferred_method = args.method

    queue = DeliveryQueue()
    try:
        collect_records(args, config, queue)
    except (BridgeError, ValueError) as e:
        logger.error(str(e))
        return 2

    client = None
    remote_ids: Dict[str, str] = {}
    if args.from_server:
        client = TransportClient(config.server_host, config.server_port)
        try:
            remote_ids = pull_pending(client, queue)
        except TransportUnavailable as e:
            logger.error(f"{e}. Is the note application running?")
            return 1
        except TransportError as e:
            logger.error(f"Could not read the server queue: {e}")
            return 1

    if queue.size() == 0 and not (args.list_notebooks or args.dump_dom):
        logger.info("Nothing to send.")
        return 0

    with BrowserSession(config.profile_dir, config.base_url, headless=config.headless) as browser:
        if args.notebook and not args.list_notebooks:
            browser.open_container(args.notebook)
        else:
            browser.open_home()

        if "accounts.google.com" in browser.page.url:
            logger.warning("Sign in to Google in the browser window to continue.")
            browser.wait_for_login(timeout=LOGIN_TIMEOUT)

        locator = TargetSessionLocator(browser.page, config.base_url)
        if args.list_notebooks:
            for nb in locator.list_containers():
                print(f"{nb.id or '-':40} {nb.title}")
            if args.notebook:
                browser.open_container(args.notebook)

        if args.dump_dom:
            dump_page_inventory(browser.page, ROOT / config.dump_path)

        if args.new_notebook and queue.size():
            try:
                notebook_id = browser.create_container()
            except BridgeError as e:
                logger.error(f"Could not create a notebook: {e}")
                return 1
            logger.info(f"Sending into new notebook {notebook_id}")

        if queue.size() == 0:
            return 0

        dispatcher = build_dispatcher(browser.page, queue, config)
        results = dispatcher.dispatch_all()

    failures: List[str] = []
    for result in results:
        if result.status is DispatchStatus.PARTIAL:
            logger.warning("Text is in the add-source dialog. Press Insert in the browser to finish.")
        if not result.delivered:
            failures.append(result.entry_id)
            continue
        if client is not None:
            try:
                acknowledge(client, remote_ids, result.entry_id)
            except TransportError as e:
                logger.warning(f"Delivered, but could not update the local server: {e}")

    if queue.size():
        stopped_partial = bool(results) and results[-1].status is DispatchStatus.PARTIAL
        hint = "Press Insert, then run again." if stopped_partial else "Open a notebook and run again."
        logger.warning(f"{queue.size()} note(s) were not sent. {hint}")
    return 1 if failures or queue.size() else 0


if __name__ == "__main__":
    sys.exit(main())
