import typing
from copy import deepcopy

import pytest
from ape.utils import ZERO_ADDRESS
from eth_utils import to_checksum_address

from unity_deployment.adoption import ImplementationRef, ProxyRef
from unity_deployment.chain import (
    CallReverted,
    ChainClient,
    DeployedContract,
    DeploymentFailed,
    Timeout,
)
from unity_deployment.constants import CONSTRUCTOR_PARAMS_DIR, ModuleKind
from unity_deployment.utils import _load_yaml

# Common constants
LOCAL_CHAIN_ID = 1337
ADMIN = to_checksum_address("0x" + "ad" * 20)
STRANGER = to_checksum_address("0x" + "5e" * 20)


class FakeReceipt(typing.NamedTuple):
    txn_hash: str
    function_name: str
    args: tuple


class Slots:
    """A unitroller's admin and implementation slots."""

    def __init__(self, admin):
        self.admin = admin
        self.pending = ZERO_ADDRESS
        self.current = ZERO_ADDRESS


class FakeChain(ChainClient):
    """
    In-memory chain that follows unitroller semantics:
    only the admin may nominate, and only the pending implementation may accept,
    acting on behalf of the admin.
    """

    def __init__(self, chain_id: int = LOCAL_CHAIN_ID):
        self._chain_id = chain_id
        self.sender = ADMIN
        self.contracts = dict()
        self.slots = dict()
        self.journal = list()
        self.reverts = dict()
        self.timeouts = set()
        self.failing_deployments = set()
        self.read_timeouts = set()
        # confirms acceptance without applying it
        self.silent_acceptance = False
        self._nonce = 0

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def deployer_address(self):
        return self.sender

    def _next(self) -> int:
        self._nonce += 1
        return self._nonce

    def deploy(self, contract_name: str, *args) -> DeployedContract:
        if contract_name in self.failing_deployments:
            raise DeploymentFailed(contract_name, "constructor reverted")
        nonce = self._next()
        address = to_checksum_address(f"0x{0x1000 + nonce:040x}")
        self.contracts[address] = (contract_name, args)
        self.slots[address] = Slots(admin=self.sender)
        return DeployedContract(
            name=contract_name,
            address=address,
            tx_hash=f"0x{nonce:064x}",
            block_number=nonce,
            deployer=self.sender,
            chain_id=self.chain_id,
        )

    def call(self, address, contract_name, function_name, *args):
        self.journal.append((address, function_name, args))
        if function_name in self.timeouts:
            raise Timeout(address, function_name)
        if function_name in self.reverts:
            raise CallReverted(address, function_name, self.reverts[function_name])

        if function_name == "_setPendingImplementation":
            slots = self.slots[address]
            if self.sender != slots.admin:
                raise CallReverted(address, function_name, "unauthorized")
            slots.pending = to_checksum_address(args[0])
        elif function_name == "_become":
            slots = self.slots[to_checksum_address(args[0])]
            if self.sender != slots.admin:
                raise CallReverted(address, function_name, "only admin can change brains")
            if slots.pending == ZERO_ADDRESS or slots.pending != address:
                raise CallReverted(address, function_name, "not pending implementation")
            if not self.silent_acceptance:
                slots.current, slots.pending = slots.pending, ZERO_ADDRESS
        else:
            raise CallReverted(address, function_name, "unknown function")

        receipt_hash = f"0x{self._next():064x}"
        return FakeReceipt(txn_hash=receipt_hash, function_name=function_name, args=args)

    def read(self, address, contract_name, function_name, *args):
        if function_name in self.read_timeouts:
            raise Timeout(address, function_name)
        slots = self.slots[address]
        if function_name.startswith("pending"):
            return slots.pending
        return slots.current

    def is_contract(self, address) -> bool:
        return address in self.contracts

    def calls_to(self, function_name: str) -> list:
        return [entry for entry in self.journal if entry[1] == function_name]


# Fixtures
@pytest.fixture
def fake_chain():
    return FakeChain()


@pytest.fixture
def proxy(fake_chain):
    deployment = fake_chain.deploy("UAIVaultProxy")
    return ProxyRef(
        address=deployment.address,
        contract_name="UAIVaultProxy",
        pending_getter="pendingUAIVaultImplementation",
        current_getter="uaiVaultImplementation",
    )


def _implementation(chain):
    deployment = chain.deploy("UAIVault")
    return ImplementationRef(
        address=deployment.address, contract_name="UAIVault", kind=ModuleKind.VAULT
    )


@pytest.fixture
def implementation(fake_chain):
    return _implementation(fake_chain)


@pytest.fixture
def other_implementation(fake_chain):
    return _implementation(fake_chain)


@pytest.fixture(scope="session")
def local_config():
    return _load_yaml(CONSTRUCTOR_PARAMS_DIR / "local.yml")


@pytest.fixture
def config(local_config, tmp_path):
    config = deepcopy(local_config)
    config["artifacts"]["dir"] = str(tmp_path / "artifacts")
    return config
