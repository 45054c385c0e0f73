import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ape.utils import ZERO_ADDRESS
from eth_typing import ChecksumAddress
from eth_utils import is_hex_address, to_checksum_address

from unity_deployment.adoption import AdoptionRequest, ImplementationRef, ProxyRef
from unity_deployment.constants import DEFAULT_CURRENT_GETTER, DEFAULT_PENDING_GETTER, ModuleKind

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
MODULE_ADOPTION_KEY = "adoption"


class InvalidPlan(ValueError):
    """Raised when a module's deployment configuration is malformed."""


class Resolution(typing.NamedTuple):
    """Everything a variable may resolve against at deployment time."""

    deployer: ChecksumAddress
    deployments: Dict[str, ChecksumAddress]


class VariableContext:
    def __init__(
        self,
        contract_names: List[str],
        contract_name: str,
        constants: typing.Dict[str, Any] = None,
    ):
        self.contract_names = contract_names or list()
        self.contract_name = contract_name
        self.constants = constants or dict()

    @property
    def preceding_contract_names(self) -> List[str]:
        if self.contract_name not in self.contract_names:
            return list(self.contract_names)
        return self.contract_names[: self.contract_names.index(self.contract_name)]


class ArgumentKind(Enum):
    ADDRESS = "address"
    INTEGER = "integer"
    STRING = "string"

    @classmethod
    def of(cls, value: Any) -> "ArgumentKind":
        if isinstance(value, bool):
            raise InvalidPlan(f"Boolean constructor arguments are not supported ({value}).")
        if isinstance(value, int):
            return cls.INTEGER
        if not isinstance(value, str):
            raise InvalidPlan(f"Unsupported constructor argument {value!r}.")
        if is_hex_address(value):
            return cls.ADDRESS
        if value.isdigit():
            return cls.INTEGER
        return cls.STRING


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @property
    @abstractmethod
    def kind(self) -> ArgumentKind:
        raise NotImplementedError

    @abstractmethod
    def resolve(self, resolution: Resolution) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        return isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)


class DeployerAccount(Variable):
    DEPLOYER_INDICATOR = "deployer"

    kind = ArgumentKind.ADDRESS

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is a special deployer variable."""
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self, resolution: Resolution) -> Any:
        return resolution.deployer

    def __repr__(self):
        return f"${self.DEPLOYER_INDICATOR}"


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        try:
            self.constant_value = context.constants[constant_name]
        except KeyError:
            raise InvalidPlan(f"Constant '{constant_name}' not found in deployment file.")
        self.constant_name = constant_name
        self._kind = ArgumentKind.of(self.constant_value)

    @classmethod
    def is_constant(cls, value: str, context: VariableContext) -> bool:
        """
        Returns True if the variable is a deployment constant. Upper case names of
        contracts in the same module (e.g. UAI) refer to the contract instead.
        """
        return value.isupper() and value not in context.contract_names

    @property
    def kind(self) -> ArgumentKind:
        return self._kind

    def resolve(self, resolution: Resolution) -> Any:
        return self.constant_value

    def __repr__(self):
        return f"${self.constant_name}"


class ContractName(Variable):
    kind = ArgumentKind.ADDRESS

    def __init__(self, contract_name: str, context: VariableContext):
        if contract_name not in context.contract_names:
            raise InvalidPlan(f"Contract name {contract_name} not found")
        if contract_name not in context.preceding_contract_names:
            raise InvalidPlan(
                f"{context.contract_name} refers to {contract_name}, "
                f"which is not deployed before it"
            )
        self.contract_name = contract_name

    def resolve(self, resolution: Resolution) -> Any:
        """Resolves a contract address; zero address if it is not deployed yet."""
        return resolution.deployments.get(self.contract_name, ZERO_ADDRESS)

    def __repr__(self):
        return f"${self.contract_name}"


def _variable_from_value(variable: str, context: VariableContext) -> Variable:
    variable = variable.strip(Variable.VARIABLE_PREFIX)
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount()
    elif Constant.is_constant(variable, context):
        return Constant(variable, context)
    else:
        return ContractName(variable, context)


class ConstructorArgument(typing.NamedTuple):
    name: str
    kind: ArgumentKind
    value: Any

    @classmethod
    def from_raw(cls, name: str, value: Any, context: VariableContext) -> "ConstructorArgument":
        if Variable.is_variable(value):
            variable = _variable_from_value(value, context)
            return cls(name=name, kind=variable.kind, value=variable)
        return cls(name=name, kind=ArgumentKind.of(value), value=value)

    def resolve(self, resolution: Resolution) -> Any:
        value = self.value
        if isinstance(value, Variable):
            value = value.resolve(resolution)
        if self.kind is ArgumentKind.ADDRESS:
            return to_checksum_address(value)
        if self.kind is ArgumentKind.INTEGER:
            return int(value)
        return value


class ContractRole(Enum):
    IMPLEMENTATION = "implementation"
    PROXY = "proxy"
    STANDALONE = "standalone"


class ContractSpec(typing.NamedTuple):
    name: str
    role: ContractRole
    arguments: Tuple[ConstructorArgument, ...] = ()

    def resolve(self, resolution: Resolution) -> OrderedDict:
        """Resolves the constructor arguments, in order, keyed by parameter name."""
        resolved = OrderedDict()
        for argument in self.arguments:
            resolved[argument.name] = argument.resolve(resolution)
        return resolved


class ProxyAdoptionSpec(typing.NamedTuple):
    implementation: str
    proxy: str
    pending_getter: str = DEFAULT_PENDING_GETTER
    current_getter: str = DEFAULT_CURRENT_GETTER


def _get_contract_names(contracts_config: List[Any]) -> List[str]:
    contract_names = list()
    for contract_info in contracts_config:
        if isinstance(contract_info, str):
            contract_names.append(contract_info)
        elif isinstance(contract_info, dict) and len(contract_info) == 1:
            contract_names.extend(list(contract_info.keys()))
        else:
            raise InvalidPlan("Malformed constructor parameters YAML.")

    duplicates = {name for name in contract_names if contract_names.count(name) > 1}
    if duplicates:
        raise InvalidPlan(f"Contracts listed more than once: {', '.join(sorted(duplicates))}")
    return contract_names


class DeploymentPlan:
    """The ordered contracts of one module, and how its proxy (if any) is adopted."""

    Invalid = InvalidPlan

    def __init__(
        self,
        module: str,
        kind: ModuleKind,
        contracts: List[ContractSpec],
        adoption: Optional[ProxyAdoptionSpec] = None,
    ):
        self.module = module
        self.kind = kind
        self.contracts = list(contracts)
        self.adoption = adoption
        self._validate()

    @property
    def uses_proxy_adoption(self) -> bool:
        return self.adoption is not None

    @property
    def contract_names(self) -> List[str]:
        return [contract.name for contract in self.contracts]

    def get(self, contract_name: str) -> ContractSpec:
        for contract in self.contracts:
            if contract.name == contract_name:
                return contract
        raise KeyError(contract_name)

    def adoption_request(self, addresses: Dict[str, ChecksumAddress]) -> AdoptionRequest:
        """Builds the proxy/implementation pair from deployed addresses keyed by contract name."""
        if not self.uses_proxy_adoption:
            raise self.Invalid(f"Module {self.module} does not use proxy adoption.")
        candidate = ImplementationRef(
            address=to_checksum_address(addresses[self.adoption.implementation]),
            contract_name=self.adoption.implementation,
            kind=self.kind,
        )
        proxy = ProxyRef(
            address=to_checksum_address(addresses[self.adoption.proxy]),
            contract_name=self.adoption.proxy,
            pending_getter=self.adoption.pending_getter,
            current_getter=self.adoption.current_getter,
        )
        return AdoptionRequest(proxy=proxy, candidate=candidate)

    def _validate(self) -> None:
        if not self.contracts:
            raise self.Invalid(f"Module {self.module} has no contracts.")
        if not self.uses_proxy_adoption:
            return

        names = self.contract_names
        for name in (self.adoption.implementation, self.adoption.proxy):
            if name not in names:
                raise self.Invalid(f"{name} is part of the adoption but is not deployed.")
        if names.index(self.adoption.implementation) > names.index(self.adoption.proxy):
            raise self.Invalid(
                f"{self.adoption.implementation} must be deployed before {self.adoption.proxy}."
            )

    @classmethod
    def from_config(cls, config: typing.Dict, module: str) -> "DeploymentPlan":
        """Loads the deployment plan of a single module from a params config."""
        print(f"Processing {module} deployment plan...")
        try:
            module_config = config["modules"][module]
        except (KeyError, TypeError):
            raise cls.Invalid(f"Module '{module}' not found in deployment file.")
        if not isinstance(module_config, dict):
            raise cls.Invalid(f"Malformed config for module {module}.")

        try:
            kind = ModuleKind(module_config.get("kind", ModuleKind.HELPER.value))
        except ValueError:
            raise cls.Invalid(f"Unknown kind '{module_config['kind']}' for module {module}.")

        adoption = None
        adoption_config = module_config.get(MODULE_ADOPTION_KEY)
        if adoption_config:
            try:
                adoption = ProxyAdoptionSpec(**adoption_config)
            except TypeError as e:
                raise cls.Invalid(f"Malformed adoption config for module {module}: {e}")

        contracts_config = module_config.get("contracts") or list()
        contract_names = _get_contract_names(contracts_config)
        constants = config.get("constants") or dict()

        contracts = list()
        for contract_info in contracts_config:
            if isinstance(contract_info, str):
                contract_name, contract_data = contract_info, dict()
            else:
                contract_name = list(contract_info.keys())[0]  # only one entry
                contract_data = contract_info[contract_name] or dict()

            context = VariableContext(
                contract_names=contract_names, contract_name=contract_name, constants=constants
            )
            arguments = cls._process_arguments(contract_data, context)
            contracts.append(
                ContractSpec(
                    name=contract_name,
                    role=cls._role(contract_name, adoption),
                    arguments=tuple(arguments),
                )
            )

        return cls(module=module, kind=kind, contracts=contracts, adoption=adoption)

    @staticmethod
    def _process_arguments(contract_data, context: VariableContext) -> List[ConstructorArgument]:
        parameters = contract_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or OrderedDict()
        if not isinstance(parameters, dict):
            raise InvalidPlan(
                f"Malformed constructor parameter config for {context.contract_name}."
            )
        return [
            ConstructorArgument.from_raw(name, value, context) for name, value in parameters.items()
        ]

    @staticmethod
    def _role(contract_name: str, adoption: Optional[ProxyAdoptionSpec]) -> ContractRole:
        if adoption is None:
            return ContractRole.STANDALONE
        if contract_name == adoption.implementation:
            return ContractRole.IMPLEMENTATION
        if contract_name == adoption.proxy:
            return ContractRole.PROXY
        return ContractRole.STANDALONE
