"""Tests for the agent-wallet command line."""

import json

import pytest
from typer.testing import CliRunner

from agent_wallet import __version__
from agent_wallet.cli.app import app
from agent_wallet.wallet.store import load_wallet
from conftest import ADDRESS_0, KEY_0, RECIPIENT

runner = CliRunner()


@pytest.fixture
def invoke(tmp_path, wallet_path):
    config_path = tmp_path / "missing-config.yaml"

    def _invoke(*args, input=None):
        return runner.invoke(
            app,
            ["--config", str(config_path), "--wallet", str(wallet_path), *args],
            input=input,
        )

    return _invoke


class TestCli:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_empty_wallet(self, invoke):
        result = invoke("accounts")
        assert result.exit_code == 0
        assert "No accounts yet" in result.output

    def test_new_account(self, invoke, wallet_path):
        result = invoke("new", "--alias", "main")
        assert result.exit_code == 0
        assert load_wallet(wallet_path).alias_owner("main") is not None

    def test_alias_and_resolve(self, invoke):
        assert invoke("alias", RECIPIENT.lower(), "bob").exit_code == 0
        result = invoke("resolve", "BOB")
        assert result.exit_code == 0
        assert RECIPIENT in result.output

    def test_import_reads_prompt(self, invoke, wallet_path):
        result = invoke("import", input=KEY_0 + "\n")
        assert result.exit_code == 0
        assert KEY_0 not in result.output.replace("Private key:", "")
        assert load_wallet(wallet_path).get(ADDRESS_0).is_signing

    def test_set_nonce(self, invoke, wallet_path):
        invoke("import", input=KEY_0 + "\n")
        assert invoke("set-nonce", ADDRESS_0, "3").exit_code == 0
        result = invoke("set-nonce", ADDRESS_0, "1")
        assert result.exit_code == 1
        assert "transaction_validation" in result.output
        assert load_wallet(wallet_path).get(ADDRESS_0).nonce == 3

    def test_errors_exit_nonzero(self, invoke):
        result = invoke("resolve", "nobody")
        assert result.exit_code == 1
        assert "alias_not_found" in result.output

    def test_tools(self, invoke):
        result = invoke("tools")
        assert result.exit_code == 0
        names = [d["name"] for d in json.loads(result.output)]
        assert "sign_tx" in names

    def test_serve(self, invoke):
        request = {"command": "set_alias", "params": {"address": RECIPIENT, "alias": "bob"}}
        result = invoke("serve", input=json.dumps(request) + "\n")
        assert result.exit_code == 0
        [line] = [l for l in result.stdout.splitlines() if l.startswith('{"status"')]
        response = json.loads(line)
        assert response == {"status": "success", "data": {"address": RECIPIENT, "alias": "bob"}}

    def test_unknown_network(self, tmp_path, wallet_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("chain:\n  network: atlantis\n", encoding="utf-8")
        result = runner.invoke(
            app, ["--config", str(config_path), "--wallet", str(wallet_path), "accounts"]
        )
        assert result.exit_code == 1
        assert "Unknown network" in result.output
        assert not isinstance(result.exception, KeyError)
