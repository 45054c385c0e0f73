import typing
from abc import ABC, abstractmethod
from typing import Any, List

from ape import chain, networks
from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractInstance, ContractTransactionHandler
from ape.exceptions import ContractLogicError, TransactionError, TransactionNotFoundError
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from ethpm_types import MethodABI
from web3.auto import w3

from unity_deployment.confirm import _continue
from unity_deployment.utils import get_contract_container


class ChainClientError(Exception):
    """Base class for failures reported by a chain client."""


class DeploymentFailed(ChainClientError):
    def __init__(self, contract_name: str, reason: str):
        self.contract_name = contract_name
        self.reason = reason
        super().__init__(f"Deployment of {contract_name} failed: {reason}")


class CallReverted(ChainClientError):
    def __init__(self, address: ChecksumAddress, function_name: str, reason: str):
        self.address = address
        self.function_name = function_name
        self.reason = reason
        super().__init__(f"{function_name} on {address} reverted: {reason}")


class Timeout(ChainClientError):
    def __init__(self, address: ChecksumAddress, function_name: str, reason: str = ""):
        self.address = address
        self.function_name = function_name
        self.reason = reason or "no confirmation received"
        super().__init__(f"{function_name} on {address} timed out: {self.reason}")


class DeployedContract(typing.NamedTuple):
    """A confirmed deployment."""

    name: str
    address: ChecksumAddress
    tx_hash: str
    block_number: int
    deployer: ChecksumAddress
    chain_id: int


class ChainClient(ABC):
    """
    Everything the deployment flow needs from a chain: deploy a named contract,
    send a state changing call and wait for it, read a view function.
    """

    @property
    @abstractmethod
    def chain_id(self) -> int:
        raise NotImplementedError

    @property
    @abstractmethod
    def deployer_address(self) -> ChecksumAddress:
        raise NotImplementedError

    @abstractmethod
    def deploy(self, contract_name: str, *args) -> DeployedContract:
        """Deploys contract_name and blocks until confirmed. Raises DeploymentFailed."""
        raise NotImplementedError

    @abstractmethod
    def call(self, address: ChecksumAddress, contract_name: str, function_name: str, *args):
        """Transacts and blocks until confirmed. Raises CallReverted or Timeout."""
        raise NotImplementedError

    @abstractmethod
    def read(self, address: ChecksumAddress, contract_name: str, function_name: str, *args) -> Any:
        raise NotImplementedError

    @abstractmethod
    def is_contract(self, address: ChecksumAddress) -> bool:
        raise NotImplementedError


def _validate_method_args(
    method_abis: List[MethodABI], args: typing.Sequence[Any]
) -> typing.Dict[str, Any]:
    """Validates the transaction arguments against the function ABI."""
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    abis_matching_args_length = [abi for abi in method_abis if len(abi.inputs) == len(args)]
    for abi in abis_matching_args_length:
        named_args = {}
        for arg, abi_input in zip(args, abi.inputs):
            if not w3.is_encodable(abi_input.type, arg):
                break
            named_args[abi_input.name] = arg
        else:
            return named_args
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


class Transactor:
    """
    Represents an ape account plus validated/annotated transaction execution.
    """

    def __init__(self, account: typing.Optional[AccountAPI] = None, autosign: bool = False):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        self._account.set_autosign(autosign)

    @property
    def autosign(self) -> bool:
        return self._autosign

    def transact(self, method: ContractTransactionHandler, *args) -> ReceiptAPI:
        named_args = _validate_method_args(method_abis=method.abis, args=args)
        base_message = (
            f"\nTransacting {method.contract.contract_type.name}"
            f"[{method.contract.address[:10]}].{method}"
        )
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        print(message)
        if not self._autosign:
            _continue()

        return method(*args, sender=self._account)


class ApeChainClient(Transactor, ChainClient):
    """ChainClient backed by an ape account and the compiled project's contract types."""

    def __init__(
        self,
        account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
        publish: bool = False,
    ):
        super().__init__(account=account, autosign=autosign)
        self.publish = publish
        self.instances: typing.Dict[ChecksumAddress, ContractInstance] = dict()

    @property
    def chain_id(self) -> int:
        return networks.provider.network.chain_id

    @property
    def deployer_address(self) -> ChecksumAddress:
        return to_checksum_address(self._account.address)

    def _at(self, address: ChecksumAddress, contract_name: str) -> ContractInstance:
        instance = self.instances.get(to_checksum_address(address))
        if instance is None or instance.contract_type.name != contract_name:
            instance = get_contract_container(contract_name).at(address)
        return instance

    def deploy(self, contract_name: str, *args) -> DeployedContract:
        container = get_contract_container(contract_name)
        try:
            instance = self._account.deploy(container, *args, publish=self.publish)
        except ContractLogicError as e:
            raise DeploymentFailed(contract_name, e.revert_message) from e
        except TransactionNotFoundError as e:
            raise DeploymentFailed(contract_name, f"no confirmation received ({e})") from e
        except TransactionError as e:
            raise DeploymentFailed(contract_name, str(e)) from e

        receipt = instance.receipt
        address = to_checksum_address(instance.address)
        self.instances[address] = instance
        return DeployedContract(
            name=contract_name,
            address=address,
            tx_hash=receipt.txn_hash,
            block_number=receipt.block_number,
            deployer=to_checksum_address(receipt.transaction.sender),
            chain_id=self.chain_id,
        )

    def call(self, address: ChecksumAddress, contract_name: str, function_name: str, *args):
        method = getattr(self._at(address, contract_name), function_name)
        try:
            return self.transact(method, *args)
        except ContractLogicError as e:
            raise CallReverted(address, function_name, e.revert_message) from e
        except TransactionNotFoundError as e:
            raise Timeout(address, function_name, str(e)) from e
        except TransactionError as e:
            raise CallReverted(address, function_name, str(e)) from e

    def read(self, address: ChecksumAddress, contract_name: str, function_name: str, *args) -> Any:
        method = getattr(self._at(address, contract_name), function_name)
        try:
            return method(*args)
        except ContractLogicError as e:
            raise CallReverted(address, function_name, e.revert_message) from e

    def is_contract(self, address: ChecksumAddress) -> bool:
        code = chain.provider.get_code(address)
        return len(code) > 0
