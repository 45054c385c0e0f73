import json
from pathlib import Path
from typing import Dict, Iterable, List

import yaml
from ape import networks, project
from ape.api.networks import LOCAL_NETWORK_NAME
from ape.contracts import ContractContainer, ContractInstance

from unity_deployment.constants import ARTIFACTS_DIR, CONSTRUCTOR_PARAMS_DIR


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def is_local_network() -> bool:
    return networks.provider.network.name == LOCAL_NETWORK_NAME


def params_filepath_from_network(network_name: str) -> Path:
    p = CONSTRUCTOR_PARAMS_DIR / f"{network_name}.yml"
    if not p.exists():
        raise ValueError(f"No constructor parameters found for network '{network_name}'")
    return p


def get_artifact_filepath(config: Dict) -> Path:
    """Returns the filepath of the artifact file."""
    artifact_config = config.get("artifacts", {})
    artifact_dir = Path(artifact_config.get("dir", ARTIFACTS_DIR))
    filename = artifact_config.get("filename")
    if not filename:
        raise ValueError("artifact filename is not set in params file.")
    return artifact_dir / filename


def validate_config(config: Dict, chain_id: int, live: bool = True) -> Path:
    """
    Checks the top level structure of a params file and that it targets the
    chain we are connected to. Returns the registry filepath for the deployment.
    """
    print("Validating parameters YAML...")

    deployment = config.get("deployment")
    if not deployment:
        raise ValueError("deployment is not set in params file.")

    config_chain_id = deployment.get("chain_id")
    if not config_chain_id:
        raise ValueError("chain_id is not set in params file.")

    if not config.get("modules"):
        raise ValueError("Constructor parameters file missing 'modules' field.")

    config_chain_id = int(config_chain_id)
    if config_chain_id != chain_id and live:
        raise ValueError(
            f"chain_id in params file ({config_chain_id}) does not match "
            f"chain_id of current network ({chain_id})."
        )

    return get_artifact_filepath(config=config)


def check_registry(registry_filepath: Path, chain_id: int, contract_names: Iterable[str]) -> None:
    """Checks that none of the given contracts are already published for chain_id."""
    if not registry_filepath.exists():
        return

    published = _load_json(registry_filepath).get(str(chain_id), {})
    already_published = [name for name in contract_names if name in published]
    if already_published:
        raise ValueError(
            f"{', '.join(already_published)} already published for chain_id {chain_id} "
            f"in {registry_filepath}."
        )


def check_explorer() -> None:
    """Checks that the connected network has a block explorer to publish to."""
    if is_local_network():
        return
    if networks.provider.network.explorer is None:
        raise ValueError(
            f"No explorer plugin configured for {networks.provider.network.name}; "
            "cannot publish contracts."
        )


def verify_contracts(contracts: List[ContractInstance]) -> None:
    explorer = networks.provider.network.explorer
    for instance in contracts:
        print(f"(i) Verifying {instance.contract_type.name}...")
        explorer.publish_contract(instance.address)


def get_contract_container(contract: str) -> ContractContainer:
    try:
        return getattr(project, contract)
    except AttributeError:
        raise ValueError(f"No contract found with name '{contract}'.")


def get_chain_name(chain_id: int) -> str:
    """Returns the name of the chain given its chain ID."""
    for ecosystem_name, ecosystem in networks.ecosystems.items():
        for network_name, network in ecosystem.networks.items():
            if network.chain_id == chain_id:
                return f"{ecosystem_name} {network_name}"
    raise ValueError(f"Chain ID {chain_id} not found in networks.")
