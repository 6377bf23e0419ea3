"""Tests for YAML configuration and network presets."""

from pathlib import Path

import pytest

from agent_wallet.config import (
    AppConfig,
    default_config_path,
    get_root_dir,
    load_config,
    save_config,
)
from agent_wallet.wallet.chains import get_network, list_network_names


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "config.yaml")
        assert config == AppConfig()
        assert config.rpc_url() == "http://127.0.0.1:8545"
        assert config.wallet_path() == Path.home() / ".agent-wallet" / "wallet.json"

    def test_env_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WALLET_RPC", "https://rpc.example.org")
        path = tmp_path / "config.yaml"
        path.write_text(
            "chain:\n"
            "  rpc_url: ${WALLET_RPC}\n"
            "storage:\n"
            "  wallet_path: ${UNSET_WALLET_VAR}/w.json\n",
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.rpc_url() == "https://rpc.example.org"
        assert config.storage.wallet_path == "${UNSET_WALLET_VAR}/w.json"

    def test_network_preset(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("chain:\n  network: Sepolia\n", encoding="utf-8")
        assert load_config(path).rpc_url() == get_network("sepolia").rpc_url

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == AppConfig()

    def test_round_trip(self, tmp_path):
        config = AppConfig()
        config.storage.wallet_path = str(tmp_path / "w.json")
        config.chain.network = "holesky"
        config.logging.level = "DEBUG"
        path = tmp_path / "nested" / "config.yaml"
        save_config(config, path)
        assert load_config(path) == config


class TestPaths:
    def test_root_dir(self, tmp_path):
        assert get_root_dir(tmp_path) == tmp_path / ".agent-wallet"
        assert default_config_path(tmp_path) == tmp_path / ".agent-wallet" / "config.yaml"


class TestNetworks:
    def test_presets(self):
        assert get_network("mainnet").chain_id == 1
        assert get_network("local").chain_id == 31337
        assert "sepolia" in list_network_names()

    def test_unknown(self):
        with pytest.raises(KeyError):
            get_network("atlantis")

    def test_unknown_network_in_config(self):
        config = AppConfig()
        config.chain.network = "atlantis"
        with pytest.raises(KeyError):
            config.rpc_url()
