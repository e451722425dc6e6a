"""Configuration helpers for dummy-wallet.

Resolves the home directory layout, expands ``${VAR}`` placeholders found in
YAML files, and provides the small YAML load/save helpers shared by the
network and service stores.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml

HOME_ENV_VAR = "DUMMY_WALLET_HOME"


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    If the variable is not set the placeholder is left as-is so that
    validation can catch it later.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def expand_env_recursive(obj: object) -> object:
    """Walk an arbitrary nested structure and expand env vars in strings."""
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [expand_env_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Home directory layout
# ---------------------------------------------------------------------------


def get_home_dir(home: str | Path | None = None) -> Path:
    """Return the dummy-wallet home directory (no auto-create).

    Resolution order: the explicit *home* argument, the
    ``DUMMY_WALLET_HOME`` environment variable, then ``~/.dummy-wallet``.
    """
    if home:
        return Path(home).expanduser()
    from_env = os.environ.get(HOME_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()
    return Path.home() / ".dummy-wallet"


def wallets_dir(home: Path) -> Path:
    return home / "wallets"


def networks_dir(home: Path) -> Path:
    return home / "networks"


def service_dir(home: Path) -> Path:
    return home / "service"


# ---------------------------------------------------------------------------
# YAML helpers
# ---------------------------------------------------------------------------


def load_yaml(path: Path) -> dict:
    """Load a YAML mapping and expand ``${VAR}`` placeholders in it.

    An empty file yields an empty dict. Malformed YAML raises ``ValueError``.
    """
    try:
        raw_data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"{path} is not valid YAML: {exc}") from exc
    if not isinstance(raw_data, dict):
        raise ValueError(f"{path} does not contain a YAML mapping")
    return expand_env_recursive(raw_data)


def save_yaml(data: dict, path: Path) -> None:
    """Write *data* to *path* as block-style YAML, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
