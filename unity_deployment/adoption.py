"""
Two-phase hand over of a unitroller-style proxy to a freshly deployed implementation.

The proxy first nominates the candidate (``_setPendingImplementation``), then the
candidate accepts the proxy (``_become``). The two transactions are not atomic: if
acceptance fails the proxy is left with the candidate as its pending implementation,
which is a valid state that only requires the acceptance to be redone.
"""

import typing
from enum import Enum
from typing import Optional, Tuple

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from unity_deployment.chain import ChainClient, ChainClientError
from unity_deployment.constants import (
    ACCEPT_FUNCTION,
    DEFAULT_CURRENT_GETTER,
    DEFAULT_PENDING_GETTER,
    NOMINATE_FUNCTION,
    ModuleKind,
)


class AdoptionStep(Enum):
    RESOLUTION = "resolution"
    NOMINATION = "nomination"
    ACCEPTANCE = "acceptance"
    VERIFICATION = "verification"


class AdoptionStatus(Enum):
    ADOPTED = "adopted"
    ADDRESS_UNRESOLVED = "address-unresolved"
    NOMINATION_FAILED = "nomination-failed"
    ACCEPTANCE_FAILED = "acceptance-failed"
    CONSISTENCY_MISMATCH = "consistency-mismatch"


class ImplementationRef(typing.NamedTuple):
    address: ChecksumAddress
    contract_name: str
    kind: ModuleKind = ModuleKind.HELPER


class ProxyRef(typing.NamedTuple):
    address: ChecksumAddress
    contract_name: str
    pending_getter: str = DEFAULT_PENDING_GETTER
    current_getter: str = DEFAULT_CURRENT_GETTER


class AdoptionRequest(typing.NamedTuple):
    proxy: ProxyRef
    candidate: ImplementationRef


class ProxyState(typing.NamedTuple):
    """Live view of a proxy's implementation slots."""

    pending: ChecksumAddress
    current: ChecksumAddress

    def is_nominated(self, candidate: ImplementationRef) -> bool:
        return self.pending == to_checksum_address(candidate.address)

    def is_adopted(self, candidate: ImplementationRef) -> bool:
        return self.current == to_checksum_address(candidate.address)


#
# Errors
#


class AdoptionError(Exception):
    step: AdoptionStep
    status: AdoptionStatus

    def __init__(self, proxy: ProxyRef, candidate: ImplementationRef, reason: str = ""):
        self.proxy = proxy
        self.candidate = candidate
        self.reason = reason
        super().__init__(self.describe())

    def describe(self) -> str:
        raise NotImplementedError


class AddressUnresolved(AdoptionError):
    step = AdoptionStep.RESOLUTION
    status = AdoptionStatus.ADDRESS_UNRESOLVED

    def __init__(self, proxy, candidate, address, reason: str = ""):
        self.address = address
        super().__init__(proxy, candidate, reason or "no contract code at address")

    def describe(self) -> str:
        return (
            f"Cannot adopt {self.candidate.contract_name} into {self.proxy.contract_name}: "
            f"{self.address} is not a deployed contract ({self.reason}). "
            "No transactions were sent."
        )


class NominationFailed(AdoptionError):
    step = AdoptionStep.NOMINATION
    status = AdoptionStatus.NOMINATION_FAILED

    def describe(self) -> str:
        return (
            f"{self.proxy.contract_name}[{self.proxy.address}] did not nominate "
            f"{self.candidate.contract_name}[{self.candidate.address}]: {self.reason}. "
            "Acceptance was not attempted."
        )


class AcceptanceFailed(AdoptionError):
    step = AdoptionStep.ACCEPTANCE
    status = AdoptionStatus.ACCEPTANCE_FAILED

    def describe(self) -> str:
        return (
            f"{self.candidate.contract_name}[{self.candidate.address}] did not accept "
            f"{self.proxy.contract_name}[{self.proxy.address}]: {self.reason}. "
            f"The proxy may still have {self.candidate.address} as its pending implementation; "
            "only the acceptance needs to be retried."
        )


class ConsistencyMismatch(AdoptionError):
    step = AdoptionStep.VERIFICATION
    status = AdoptionStatus.CONSISTENCY_MISMATCH

    def __init__(
        self, proxy, candidate, observed: Optional[ChecksumAddress] = None, reason: str = ""
    ):
        self.observed = observed
        super().__init__(proxy, candidate, reason or f"current implementation is {observed}")

    def describe(self) -> str:
        if self.observed is None:
            return (
                f"Adoption by {self.proxy.contract_name}[{self.proxy.address}] was confirmed "
                f"but its {self.proxy.current_getter}() could not be read: "
                f"{self.reason}. Expected {self.candidate.address}."
            )
        return (
            f"Adoption by {self.proxy.contract_name}[{self.proxy.address}] was confirmed "
            f"but its {self.proxy.current_getter}() is {self.observed}, "
            f"not {self.candidate.address}."
        )


class ProxyUnreadable(Exception):
    """A proxy's implementation slots could not be read."""

    def __init__(self, proxy: ProxyRef, getter: str, reason: str):
        self.proxy = proxy
        self.getter = getter
        self.reason = reason
        super().__init__(
            f"Could not read {getter}() of {proxy.contract_name}[{proxy.address}]: {reason}"
        )


class AdoptionResult(typing.NamedTuple):
    request: AdoptionRequest
    error: Optional[AdoptionError] = None
    receipts: Tuple = ()

    @property
    def proxy(self) -> ProxyRef:
        return self.request.proxy

    @property
    def candidate(self) -> ImplementationRef:
        return self.request.candidate

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status(self) -> AdoptionStatus:
        if self.error is None:
            return AdoptionStatus.ADOPTED
        return self.error.status

    @property
    def failed_step(self) -> Optional[AdoptionStep]:
        if self.error is None:
            return None
        return self.error.step

    def raise_for_status(self) -> None:
        if self.error is not None:
            raise self.error

    def __str__(self) -> str:
        if self.ok:
            return (
                f"{self.proxy.contract_name}[{self.proxy.address}] adopted "
                f"{self.candidate.contract_name}[{self.candidate.address}]"
            )
        return f"{self.status.value}: {self.error}"


class ProxyAdoptionOrchestrator:
    """
    Drives the nominate-then-accept handshake through a ChainClient.

    Steps are never retried here; a failed result names the step that failed so
    that an operator can decide what to redo.
    """

    def __init__(self, client: ChainClient, verify: bool = False):
        self.client = client
        self.verify = verify

    def adopt(self, proxy: ProxyRef, candidate: ImplementationRef) -> AdoptionResult:
        request = AdoptionRequest(proxy=proxy, candidate=candidate)
        receipts = list()
        try:
            self._resolve(request)
            receipts.append(self.nominate(proxy, candidate))
            receipts.append(self.accept(proxy, candidate))
            if self.verify:
                self.check(proxy, candidate)
        except AdoptionError as error:
            return AdoptionResult(request=request, error=error, receipts=tuple(receipts))
        return AdoptionResult(request=request, receipts=tuple(receipts))

    def resume(self, proxy: ProxyRef, candidate: ImplementationRef) -> AdoptionResult:
        """Redoes only the acceptance for a proxy that already nominated candidate."""
        request = AdoptionRequest(proxy=proxy, candidate=candidate)
        receipts = list()
        try:
            self._resolve(request)
            receipts.append(self.accept(proxy, candidate))
            if self.verify:
                self.check(proxy, candidate)
        except AdoptionError as error:
            return AdoptionResult(request=request, error=error, receipts=tuple(receipts))
        return AdoptionResult(request=request, receipts=tuple(receipts))

    def nominate(self, proxy: ProxyRef, candidate: ImplementationRef):
        print(
            f"\nNominating {candidate.contract_name} as pending implementation "
            f"of {proxy.contract_name}"
        )
        try:
            receipt = self.client.call(
                proxy.address, proxy.contract_name, NOMINATE_FUNCTION, candidate.address
            )
        except ChainClientError as e:
            raise NominationFailed(proxy, candidate, getattr(e, "reason", str(e))) from e
        print(f"{proxy.contract_name} implementation requested")
        return receipt

    def accept(self, proxy: ProxyRef, candidate: ImplementationRef):
        print(f"\nAccepting {proxy.contract_name} from {candidate.contract_name}")
        try:
            receipt = self.client.call(
                candidate.address, candidate.contract_name, ACCEPT_FUNCTION, proxy.address
            )
        except ChainClientError as e:
            raise AcceptanceFailed(proxy, candidate, getattr(e, "reason", str(e))) from e
        print(f"{candidate.contract_name} implementation accepted")
        return receipt

    def inspect(self, proxy: ProxyRef) -> ProxyState:
        """Reads both implementation slots. Raises ProxyUnreadable."""
        pending = self._read_slot(proxy, proxy.pending_getter)
        current = self._read_slot(proxy, proxy.current_getter)
        return ProxyState(pending=pending, current=current)

    def check(self, proxy: ProxyRef, candidate: ImplementationRef) -> None:
        try:
            current = self._read_slot(proxy, proxy.current_getter)
        except ProxyUnreadable as e:
            raise ConsistencyMismatch(proxy, candidate, reason=e.reason) from e
        if current != to_checksum_address(candidate.address):
            raise ConsistencyMismatch(proxy, candidate, observed=current)

    def _read_slot(self, proxy: ProxyRef, getter: str) -> ChecksumAddress:
        try:
            value = self.client.read(proxy.address, proxy.contract_name, getter)
        except ChainClientError as e:
            raise ProxyUnreadable(proxy, getter, getattr(e, "reason", str(e))) from e
        return to_checksum_address(value)

    def _resolve(self, request: AdoptionRequest) -> None:
        for address in (request.proxy.address, request.candidate.address):
            try:
                resolved = self.client.is_contract(to_checksum_address(address))
            except ValueError as e:
                raise AddressUnresolved(request.proxy, request.candidate, address, str(e)) from e
            if not resolved:
                raise AddressUnresolved(request.proxy, request.candidate, address)
