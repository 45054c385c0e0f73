import json
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, NamedTuple

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from unity_deployment.chain import DeployedContract
from unity_deployment.utils import _load_json

ChainId = int
ContractName = str


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """Represents a single deployed contract in a registry file."""

    chain_id: ChainId
    name: ContractName
    address: ChecksumAddress
    tx_hash: str
    block_number: int
    deployer: str


def _get_entry(deployment: DeployedContract) -> RegistryEntry:
    return RegistryEntry(
        chain_id=deployment.chain_id,
        name=deployment.name,
        address=to_checksum_address(deployment.address),
        tx_hash=str(deployment.tx_hash),
        block_number=int(deployment.block_number),
        deployer=deployment.deployer,
    )


def read_registry(filepath: Path) -> List[RegistryEntry]:
    data = _load_json(filepath)
    registry_entries = list()
    for chain_id, entries in data.items():
        for contract_name, artifacts in entries.items():
            registry_entry = RegistryEntry(
                chain_id=int(chain_id),
                name=contract_name,
                address=artifacts["address"],
                tx_hash=artifacts["tx_hash"],
                block_number=artifacts["block_number"],
                deployer=artifacts["deployer"],
            )
            registry_entries.append(registry_entry)
    return registry_entries


def write_registry(entries: List[RegistryEntry], filepath: Path, silent: bool = False) -> Path:
    """
    Writes a registry file. Entries are merged into an existing file unless one of
    them is already present for the same chain, in which case the new entries are
    written next to it as *.unmerged.json.
    """

    if not entries:
        print("No entries provided.")
        return filepath

    entries = sorted(entries, key=lambda entry: (str(entry.chain_id), entry.name))

    data = defaultdict(dict)
    for entry in entries:
        data[str(entry.chain_id)][entry.name] = {
            "address": entry.address,
            "tx_hash": entry.tx_hash,
            "block_number": int(entry.block_number),
            "deployer": entry.deployer,
        }

    filepath.parent.mkdir(parents=True, exist_ok=True)

    if filepath.exists():
        if not silent:
            print(f"Updating existing registry at {filepath}.")
        existing_data = _load_json(filepath)

        overlapping = any(
            name in existing_data.get(chain_id, {})
            for chain_id, chain_entries in data.items()
            for name in chain_entries
        )
        if overlapping:
            filepath = filepath.with_suffix(".unmerged.json")
            if not silent:
                print(
                    "Cannot merge registries with overlapping contracts.\n"
                    f"Writing to {filepath} to avoid overwriting existing data."
                )
        else:
            for chain_id, chain_entries in data.items():
                merged = dict(existing_data.get(chain_id, {}))
                merged.update(chain_entries)
                existing_data[chain_id] = dict(sorted(merged.items()))
            data = existing_data
    elif not silent:
        print(f"Creating new registry at {filepath}.")

    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)

    return filepath


def registry_from_deployments(deployments: List[DeployedContract], output_filepath: Path) -> Path:
    """Creates or extends a registry from confirmed deployments."""
    entries = [_get_entry(deployment) for deployment in deployments]
    output_filepath = write_registry(entries=entries, filepath=output_filepath)
    print(f"(i) Registry written to {output_filepath}!")
    return output_filepath


def contracts_from_registry(filepath: Path, chain_id: ChainId) -> Dict[str, ChecksumAddress]:
    """Returns the deployed addresses of a registry for one chain, keyed by contract name."""
    addresses = dict()
    for registry_entry in read_registry(filepath=filepath):
        if registry_entry.chain_id != chain_id:
            continue
        addresses[registry_entry.name] = to_checksum_address(registry_entry.address)
    return addresses
