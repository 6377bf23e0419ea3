"""Configuration system for Agent Wallet.

Loads settings from ``~/.agent-wallet/config.yaml``, supports environment
variable expansion, and resolves the wallet file location and chain RPC
endpoint from them.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from agent_wallet.wallet.chains import get_network


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


def _expand_env_recursive(obj: object) -> object:
    """Walk an arbitrary nested structure and expand env vars in strings."""
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class StorageConfig(BaseModel):
    """Where the wallet document lives."""

    wallet_path: str = "~/.agent-wallet/wallet.json"


class ChainConfig(BaseModel):
    """Chain RPC settings used to fill transaction defaults."""

    network: str = "local"
    rpc_url: Optional[str] = None  # Overrides the network preset's URL
    poa: bool = False
    timeout_seconds: float = 10.0


class LoggingConfig(BaseModel):
    """Log level for the CLI and stdio server (logs go to stderr)."""

    level: str = "INFO"


class AppConfig(BaseModel):
    """Root configuration object."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def wallet_path(self) -> Path:
        return Path(self.storage.wallet_path).expanduser()

    def rpc_url(self) -> str:
        """Explicit ``chain.rpc_url`` or the preset URL for ``chain.network``."""
        if self.chain.rpc_url:
            return self.chain.rpc_url
        return get_network(self.chain.network).rpc_url

    def use_poa(self) -> bool:
        if self.chain.poa:
            return True
        if self.chain.rpc_url:
            return False
        return get_network(self.chain.network).poa


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def get_root_dir(base: Path | None = None) -> Path:
    """Return the ``.agent-wallet/`` directory (no auto-create).

    Parameters
    ----------
    base:
        Parent directory that contains (or will contain) the root folder.
        Defaults to the user's home directory.
    """
    if base is None:
        base = Path.home()
    return base / ".agent-wallet"


def default_config_path(base: Path | None = None) -> Path:
    return get_root_dir(base) / "config.yaml"


def load_config(path: Path) -> AppConfig:
    """Load and validate configuration from a YAML file.

    A missing file yields the defaults. Environment variable placeholders
    (``${VAR}``) are expanded before validation.
    """
    if not path.exists():
        return AppConfig()
    raw_text = path.read_text(encoding="utf-8")
    raw_data = yaml.safe_load(raw_text) or {}
    expanded = _expand_env_recursive(raw_data)
    return AppConfig.model_validate(expanded)


def save_config(config: AppConfig, path: Path) -> None:
    """Serialize an :class:`AppConfig` to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="python", exclude_none=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
