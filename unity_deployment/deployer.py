import typing
from collections import OrderedDict
from pathlib import Path
from typing import Dict, Optional, Tuple

from unity_deployment.adoption import AdoptionResult, ProxyAdoptionOrchestrator
from unity_deployment.chain import ChainClient, ChainClientError, DeployedContract
from unity_deployment.confirm import _confirm_adoption, _confirm_resolution, _continue
from unity_deployment.plan import DeploymentPlan, Resolution
from unity_deployment.registry import registry_from_deployments
from unity_deployment.utils import _load_yaml, check_registry, validate_config


class ModuleDeployment(typing.NamedTuple):
    """Outcome of deploying one module."""

    plan: DeploymentPlan
    contracts: Tuple[DeployedContract, ...] = ()
    adoption: Optional[AdoptionResult] = None
    error: Optional[ChainClientError] = None

    @property
    def ok(self) -> bool:
        if self.error is not None:
            return False
        if self.plan.uses_proxy_adoption:
            return self.adoption is not None and self.adoption.ok
        return True

    @property
    def addresses(self) -> Dict[str, str]:
        return {contract.name: contract.address for contract in self.contracts}

    def get(self, contract_name: str) -> DeployedContract:
        for contract in self.contracts:
            if contract.name == contract_name:
                return contract
        raise KeyError(contract_name)


class Deployer:
    """
    Deploys the contracts of one module in plan order through a ChainClient and,
    for proxied modules, hands the proxy over to the new implementation.
    """

    def __init__(
        self,
        config: typing.Dict,
        path: Path,
        module: str,
        client: ChainClient,
        verify_adoption: bool = False,
        autosign: bool = False,
        live: bool = True,
    ):
        self.path = path
        self.config = config
        self.module = module
        self.client = client
        self.autosign = autosign
        self.deployed: typing.Dict[str, DeployedContract] = OrderedDict()

        self.registry_filepath = validate_config(config=config, chain_id=client.chain_id, live=live)
        self.plan = DeploymentPlan.from_config(config, module)
        check_registry(
            registry_filepath=self.registry_filepath,
            chain_id=client.chain_id,
            contract_names=self.plan.contract_names,
        )
        self.orchestrator = ProxyAdoptionOrchestrator(client=client, verify=verify_adoption)
        self._print_deployment_info()

        if not self.autosign:
            # Confirms the start of the deployment.
            _continue()

    @classmethod
    def from_yaml(cls, filepath: Path, **kwargs) -> "Deployer":
        config = _load_yaml(filepath)
        return cls(config=config, path=filepath, **kwargs)

    def deploy(self) -> ModuleDeployment:
        """Deploys every contract of the plan, then runs the adoption if the plan has one."""
        deployed = self.deployed
        for contract in self.plan.contracts:
            resolution = Resolution(
                deployer=self.client.deployer_address,
                deployments={name: d.address for name, d in deployed.items()},
            )
            resolved_params = contract.resolve(resolution)
            if not self.autosign:
                _confirm_resolution(resolved_params, contract.name)

            print(f"\nDeploying {contract.name}...")
            try:
                deployment = self.client.deploy(contract.name, *resolved_params.values())
            except ChainClientError as e:
                print(f"(!) {e}")
                return ModuleDeployment(plan=self.plan, contracts=tuple(deployed.values()), error=e)

            print(f"{contract.name} deployed at {deployment.address}")
            deployed[contract.name] = deployment

        adoption = None
        if self.plan.uses_proxy_adoption:
            adoption = self.adopt({name: d.address for name, d in deployed.items()})

        return ModuleDeployment(
            plan=self.plan, contracts=tuple(deployed.values()), adoption=adoption
        )

    def adopt(self, addresses: Dict[str, str]) -> AdoptionResult:
        request = self.plan.adoption_request(addresses)
        if not self.autosign:
            _confirm_adoption(request.proxy.contract_name, request.candidate.contract_name)
        return self.orchestrator.adopt(request.proxy, request.candidate)

    def finalize(self, deployment: Optional[ModuleDeployment] = None) -> Optional[Path]:
        """
        Publishes whatever was deployed to the registry, complete or not.
        Without a deployment, the contracts confirmed so far are published.
        """
        if deployment is None:
            contracts = tuple(self.deployed.values())
        else:
            contracts = deployment.contracts
        if not contracts:
            print("Nothing was deployed; registry left untouched.")
            return None
        return registry_from_deployments(
            deployments=list(contracts),
            output_filepath=self.registry_filepath,
        )

    def _print_deployment_info(self):
        print(
            f"Account: {self.client.deployer_address}",
            f"Config: {self.path}",
            f"Module: {self.module}",
            f"Contracts: {', '.join(self.plan.contract_names)}",
            f"Proxy adoption: {self.plan.uses_proxy_adoption}",
            f"Registry: {self.registry_filepath}",
            f"Chain ID: {self.client.chain_id}",
            sep="\n",
        )
