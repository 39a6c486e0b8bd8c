"""
Configuration loading.

Settings come from ``config/config.yml`` (or ``config.yml`` at the project root),
then environment variables (optionally from a ``.env`` file) override them.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from notebooklm_bridge.errors import ConfigError
from notebooklm_bridge.session import NOTEBOOKLM_URL

logger = logging.getLogger(__name__)

METHODS = ("api", "dom")
TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class BridgeConfig:
    # notebooklm
    base_url: str = NOTEBOOKLM_URL
    profile_dir: str = "~/.notebooklm-bridge/profile"
    headless: bool = False
    # delivery
    preferred_method: str = "api"
    poll_interval: float = 0.5
    poll_attempts: int = 20
    lookup_attempts: int = 5
    settle_scale: float = 1.0
    # notes
    vault_path: Optional[str] = None
    include_metadata: bool = True
    include_frontmatter: bool = False
    # server
    server_host: str = "127.0.0.1"
    server_port: int = 27123
    # debug
    dump_path: str = "logs/notebooklm_dom.json"


def find_config_file(root: Path) -> Optional[Path]:
    for candidate in (root / "config" / "config.yml", root / "config.yml"):
        if candidate.exists():
            return candidate
    return None


def read_yaml(path: Path) -> Dict[str, Any]:
    """Parse a YAML config file. Syntax errors are logged with their position and yield {}."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as ye:
            logger.error(f"Could not parse {path}. Check the indentation; YAML is sensitive to spaces.")
            if hasattr(ye, "problem_mark"):
                mark = ye.problem_mark
                logger.error(f"Error position: line {mark.line + 1}, column {mark.column + 1}")
            logger.error(f"Details: {ye}")
            return {}
    if not isinstance(data, dict):
        logger.error(f"Ignoring {path}: expected a mapping at the top level")
        return {}
    return data


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def apply_yaml(config: BridgeConfig, data: Dict[str, Any]) -> BridgeConfig:
    nlm = data.get("notebooklm") or {}
    if "base_url" in nlm:
        config.base_url = str(nlm["base_url"]).strip()
    if "profile_dir" in nlm:
        config.profile_dir = str(nlm["profile_dir"]).strip()
    if "headless" in nlm:
        config.headless = _as_bool(nlm["headless"])

    delivery = data.get("delivery") or {}
    if "preferred_method" in delivery:
        config.preferred_method = str(delivery["preferred_method"]).strip().lower()
    for key, cast in (
        ("poll_interval", float),
        ("poll_attempts", int),
        ("lookup_attempts", int),
        ("settle_scale", float),
    ):
        if key in delivery:
            try:
                setattr(config, key, cast(delivery[key]))
            except (TypeError, ValueError):
                raise ConfigError(f"delivery.{key} must be a number, got {delivery[key]!r}")

    notes = data.get("notes") or {}
    if notes.get("vault_path"):
        config.vault_path = str(notes["vault_path"]).strip()
    if "include_metadata" in notes:
        config.include_metadata = _as_bool(notes["include_metadata"])
    if "include_frontmatter" in notes:
        config.include_frontmatter = _as_bool(notes["include_frontmatter"])

    server = data.get("server") or {}
    if "host" in server:
        config.server_host = str(server["host"]).strip()
    if "port" in server:
        config.server_port = _as_port(server["port"])

    debug = data.get("debug") or {}
    if debug.get("dump_path"):
        config.dump_path = str(debug["dump_path"]).strip()
    return config


def apply_env(config: BridgeConfig, env=None) -> BridgeConfig:
    env = os.environ if env is None else env
    if env.get("BRIDGE_METHOD"):
        config.preferred_method = env["BRIDGE_METHOD"].strip().lower()
    if env.get("BRIDGE_SERVER_PORT"):
        config.server_port = _as_port(env["BRIDGE_SERVER_PORT"])
    if env.get("BRIDGE_VAULT_PATH"):
        config.vault_path = env["BRIDGE_VAULT_PATH"].strip()
    if env.get("BRIDGE_HEADLESS"):
        config.headless = _as_bool(env["BRIDGE_HEADLESS"])
    if env.get("BRIDGE_PROFILE_DIR"):
        config.profile_dir = env["BRIDGE_PROFILE_DIR"].strip()
    return config


def _as_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Server port must be an integer, got {value!r}")
    if not 0 < port < 65536:
        raise ConfigError(f"Server port out of range: {port}")
    return port


def load_config(path: Optional[Path] = None, root: Optional[Path] = None, env=None) -> BridgeConfig:
    root = Path(root or ".").resolve()
    if env is None:
        load_dotenv(root / ".env")

    config = BridgeConfig()
    config_path = Path(path) if path else find_config_file(root)
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        apply_yaml(config, read_yaml(config_path))
        logger.debug(f"Loaded configuration from {config_path}")

    apply_env(config, env)

    if config.preferred_method not in METHODS:
        logger.warning(f"Unknown delivery method '{config.preferred_method}', using 'api'")
        config.preferred_method = "api"
    return config
