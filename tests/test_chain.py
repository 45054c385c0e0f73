from types import SimpleNamespace

import pytest
from ape.exceptions import ContractLogicError, TransactionError, TransactionNotFoundError
from eth_utils import to_checksum_address
from ethpm_types.abi import ABIType, MethodABI

import unity_deployment.chain
from tests.conftest import ADMIN, LOCAL_CHAIN_ID
from unity_deployment.chain import (
    ApeChainClient,
    CallReverted,
    DeploymentFailed,
    Timeout,
)

PROXY = to_checksum_address("0x" + "01" * 20)
VAULT = to_checksum_address("0x" + "02" * 20)
TX_HASH = "0x" + "ab" * 32


def _reverted(message):
    return ContractLogicError(message, set_ape_traceback=False)


class Account:
    """Stands in for an ape account."""

    address = ADMIN

    def __init__(self, error=None):
        self.error = error
        self.deployments = list()

    def set_autosign(self, enabled):
        self.autosign = enabled

    def deploy(self, container, *args, publish=False):
        if self.error is not None:
            raise self.error
        self.deployments.append((container.name, args, publish))
        receipt = SimpleNamespace(
            txn_hash=TX_HASH, block_number=42, transaction=SimpleNamespace(sender=ADMIN)
        )
        return SimpleNamespace(address=VAULT.lower(), receipt=receipt)


class Method:
    """Stands in for a contract method handler with a single address input."""

    def __init__(self, contract, name, result=None, error=None):
        self.contract = contract
        self.name = name
        self.result = result
        self.error = error
        self.abis = [MethodABI(name=name, inputs=[ABIType(name="target", type="address")])]

    def __call__(self, *args, **kwargs):
        if self.error is not None:
            raise self.error
        return self.result

    def __str__(self):
        return self.name


class Container:
    def __init__(self, name, methods):
        self.name = name
        self.methods = methods

    def at(self, address):
        instance = SimpleNamespace(address=address, contract_type=SimpleNamespace(name=self.name))
        for name, (result, error) in self.methods.items():
            setattr(instance, name, Method(instance, name, result=result, error=error))
        return instance


class OfflineClient(ApeChainClient):
    chain_id = LOCAL_CHAIN_ID


@pytest.fixture
def containers(monkeypatch):
    registered = dict()
    monkeypatch.setattr(unity_deployment.chain, "get_contract_container", registered.__getitem__)
    return registered


def test_deploy(containers):
    containers["UAIVault"] = Container("UAIVault", methods={})
    account = Account()
    client = OfflineClient(account=account, autosign=True, publish=True)

    deployment = client.deploy("UAIVault", 1, 2)
    assert "UAIVault" == deployment.name
    assert VAULT == deployment.address
    assert TX_HASH == deployment.tx_hash
    assert 42 == deployment.block_number
    assert ADMIN == deployment.deployer
    assert LOCAL_CHAIN_ID == deployment.chain_id
    assert [("UAIVault", (1, 2), True)] == account.deployments
    assert account.autosign


@pytest.mark.parametrize(
    "error,reason",
    [
        (_reverted("constructor reverted"), "constructor reverted"),
        (TransactionError("nonce too low"), "nonce too low"),
        (TransactionNotFoundError(transaction_hash=TX_HASH), "no confirmation received"),
    ],
)
def test_deploy_failures(containers, error, reason):
    containers["UAIVault"] = Container("UAIVault", methods={})
    client = OfflineClient(account=Account(error=error), autosign=True)

    with pytest.raises(DeploymentFailed) as e:
        client.deploy("UAIVault")
    assert "UAIVault" == e.value.contract_name
    assert reason in e.value.reason


def test_call(containers):
    receipt = SimpleNamespace(txn_hash=TX_HASH)
    containers["UAIVault"] = Container("UAIVault", methods={"_become": (receipt, None)})
    client = OfflineClient(account=Account(), autosign=True)

    assert receipt is client.call(VAULT, "UAIVault", "_become", PROXY)


def test_call_reverted(containers):
    error = _reverted("only admin can change brains")
    containers["UAIVault"] = Container("UAIVault", methods={"_become": (None, error)})
    client = OfflineClient(account=Account(), autosign=True)

    with pytest.raises(CallReverted) as e:
        client.call(VAULT, "UAIVault", "_become", PROXY)
    assert "only admin can change brains" == e.value.reason
    assert "_become" == e.value.function_name
    assert VAULT == e.value.address


def test_call_timeout(containers):
    error = TransactionNotFoundError(transaction_hash=TX_HASH)
    containers["UAIVault"] = Container("UAIVault", methods={"_become": (None, error)})
    client = OfflineClient(account=Account(), autosign=True)

    with pytest.raises(Timeout) as e:
        client.call(VAULT, "UAIVault", "_become", PROXY)
    assert "_become" == e.value.function_name


def test_read(containers):
    error = _reverted("paused")
    containers["UAIVaultProxy"] = Container(
        "UAIVaultProxy",
        methods={
            "uaiVaultImplementation": (VAULT, None),
            "pendingUAIVaultImplementation": (None, error),
        },
    )
    client = OfflineClient(account=Account(), autosign=True)

    assert VAULT == client.read(PROXY, "UAIVaultProxy", "uaiVaultImplementation")
    with pytest.raises(CallReverted, match="paused"):
        client.read(PROXY, "UAIVaultProxy", "pendingUAIVaultImplementation")


def test_is_contract(monkeypatch):
    code = {PROXY: b"\x60\x80"}
    provider = SimpleNamespace(get_code=lambda address: code.get(address, b""))
    monkeypatch.setattr(unity_deployment.chain, "chain", SimpleNamespace(provider=provider))
    client = OfflineClient(account=Account(), autosign=True)

    assert client.is_contract(PROXY)
    assert not client.is_contract(VAULT)
