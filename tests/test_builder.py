"""Tests for transaction assembly and chain-supplied defaults."""

from decimal import Decimal

import pytest

from agent_wallet.exceptions import (
    AccountNotFoundError,
    AliasNotFoundError,
    ChainCollaboratorError,
    TransactionValidationError,
)
from agent_wallet.wallet.builder import (
    TransactionBuilder,
    TransactionDraft,
    parse_ether,
    parse_wei,
    resolve_value,
)
from conftest import (
    ADDRESS_0,
    CHAIN_ID,
    GAS_ESTIMATE,
    KEY_0,
    MAX_FEE,
    PRIORITY_FEE,
    RECIPIENT,
    FakeChainClient,
)


@pytest.fixture
def funded(manager):
    manager.import_private_key(KEY_0)
    manager.set_alias(ADDRESS_0, "main")
    return manager


class TestAmounts:
    def test_parse_wei_string(self):
        assert parse_wei("1000000000000000000") == 10**18

    def test_parse_wei_rejects_decimal_string(self):
        with pytest.raises(TransactionValidationError):
            parse_wei("1.5")

    def test_parse_wei_rejects_negative(self):
        with pytest.raises(TransactionValidationError) as exc_info:
            parse_wei(-1)
        assert exc_info.value.field == "value_wei"

    @pytest.mark.parametrize("text", ["\u0661\u0662", "\uff11\uff12"])
    def test_parse_wei_rejects_non_ascii_digits(self, text):
        with pytest.raises(TransactionValidationError):
            parse_wei(text)

    def test_parse_ether_rejects_non_ascii_digits(self):
        with pytest.raises(TransactionValidationError):
            parse_ether("\u0661")

    def test_parse_wei_rejects_bool(self):
        with pytest.raises(TransactionValidationError):
            parse_wei(True)

    @pytest.mark.parametrize(
        "text, wei",
        [("1", 10**18), ("0.01", 10**16), ("0.000000000000000001", 1), (Decimal("2.5"), 25 * 10**17)],
    )
    def test_parse_ether(self, text, wei):
        assert parse_ether(text) == wei

    def test_parse_ether_too_precise(self):
        with pytest.raises(TransactionValidationError, match="18 decimal"):
            parse_ether("0.0000000000000000001")

    def test_parse_ether_garbage(self):
        with pytest.raises(TransactionValidationError):
            parse_ether("lots")

    def test_value_exactly_one(self):
        with pytest.raises(TransactionValidationError, match="not both"):
            resolve_value("1", "1")
        with pytest.raises(TransactionValidationError, match="Missing value"):
            resolve_value(None, None)


class TestDraft:
    def test_chained_setters(self):
        request = (
            TransactionDraft()
            .set_chain_id(1)
            .set_to(RECIPIENT)
            .set_value(5)
            .set_gas(21000)
            .set_fees(10, 1)
            .set_nonce(0)
            .build()
        )
        assert request.type == 2
        assert request.data == "0x"

    def test_incomplete(self):
        draft = TransactionDraft(to=RECIPIENT, value=1)
        assert "chain_id" in draft.missing()
        with pytest.raises(TransactionValidationError) as exc_info:
            draft.build()
        assert exc_info.value.field == "chain_id"


class TestBuild:
    def test_defaults_from_chain(self, funded, chain):
        request = funded.build_transaction("main", RECIPIENT, value_wei="1000")

        assert request.chain_id == CHAIN_ID
        assert request.gas == GAS_ESTIMATE
        assert request.max_fee_per_gas == MAX_FEE
        assert request.max_priority_fee_per_gas == PRIORITY_FEE
        assert request.nonce == 0
        assert request.to == RECIPIENT
        assert request.value == 1000
        assert chain.names() == ["current_chain_id", "estimate_gas", "current_fee_levels"]

    def test_gas_estimate_sees_sender(self, funded, chain):
        funded.build_transaction("main", RECIPIENT, value_eth="1", data="0xabcd")
        [skeleton] = [c[1] for c in chain.calls if c[0] == "estimate_gas"]
        assert skeleton["from"] == ADDRESS_0
        assert skeleton["to"] == RECIPIENT
        assert skeleton["value"] == 10**18
        assert skeleton["data"] == "0xabcd"

    def test_explicit_fields_skip_chain(self, funded, chain):
        request = funded.build_transaction(
            "main",
            RECIPIENT,
            value_wei=1,
            chain_id=5,
            gas=30000,
            max_fee_per_gas="300",
            max_priority_fee_per_gas=20,
            nonce=9,
        )
        assert chain.calls == []
        assert (request.chain_id, request.gas, request.nonce) == (5, 30000, 9)
        assert (request.max_fee_per_gas, request.max_priority_fee_per_gas) == (300, 20)

    def test_priority_capped_at_max_fee(self, funded):
        request = funded.build_transaction(
            "main", RECIPIENT, value_wei=1, max_fee_per_gas=PRIORITY_FEE // 2
        )
        assert request.max_priority_fee_per_gas == request.max_fee_per_gas

    def test_uses_stored_nonce(self, funded):
        funded.set_nonce("main", 4)
        assert funded.build_transaction("main", RECIPIENT, value_wei=1).nonce == 4

    def test_recipient_alias(self, funded):
        funded.set_alias(RECIPIENT, "bob")
        assert funded.build_transaction("main", "Bob", value_wei=1).to == RECIPIENT

    def test_does_not_mutate_wallet(self, funded, wallet_path):
        before = wallet_path.read_bytes()
        funded.build_transaction("main", RECIPIENT, value_wei=1)
        assert wallet_path.read_bytes() == before
        assert funded.get_account("main").nonce == 0

    def test_unknown_sender(self, manager):
        with pytest.raises(AccountNotFoundError):
            manager.build_transaction(RECIPIENT, ADDRESS_0, value_wei=1)

    def test_unknown_recipient_alias(self, funded):
        with pytest.raises(AliasNotFoundError):
            funded.build_transaction("main", "nobody", value_wei=1)

    def test_bad_data(self, funded):
        with pytest.raises(TransactionValidationError):
            funded.build_transaction("main", RECIPIENT, value_wei=1, data="0xabc")

    def test_chain_failure_propagates(self, store, funded):
        builder = TransactionBuilder(store, FakeChainClient(fail=True))
        with pytest.raises(ChainCollaboratorError, match="current_chain_id"):
            builder.build("main", RECIPIENT, value_wei=1)

    def test_chain_exception_is_wrapped(self, store, funded):
        class Broken(FakeChainClient):
            def estimate_gas(self, transaction):
                raise ConnectionError("refused")

        builder = TransactionBuilder(store, Broken())
        with pytest.raises(ChainCollaboratorError, match="refused"):
            builder.build("main", RECIPIENT, value_wei=1)

    def test_no_chain_configured(self, store, funded):
        builder = TransactionBuilder(store)
        with pytest.raises(ChainCollaboratorError, match="gas"):
            builder.build("main", RECIPIENT, value_wei=1, chain_id=1)
