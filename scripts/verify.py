from pathlib import Path

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, network_option

from unity_deployment.registry import contracts_from_registry
from unity_deployment.utils import (
    _load_yaml,
    check_explorer,
    get_artifact_filepath,
    get_contract_container,
    params_filepath_from_network,
    verify_contracts,
)


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@click.option(
    "--contract-name",
    "-c",
    "contract_names",
    help="Contract to verify",
    type=click.STRING,
    required=True,
    multiple=True,
)
@click.option(
    "--registry-filepath",
    "-f",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    help="Registry filepath; defaults to the registry of the connected network profile",
    required=False,
)
def cli(network, contract_names, registry_filepath):
    """Verify deployed contracts on the block explorer."""
    check_explorer()
    if not registry_filepath:
        config = _load_yaml(params_filepath_from_network(network.name))
        registry_filepath = get_artifact_filepath(config)

    chain_id = networks.active_provider.chain_id
    addresses = contracts_from_registry(registry_filepath, chain_id=chain_id)

    contract_instances = []
    for contract_name in contract_names:
        try:
            address = addresses[contract_name]
        except KeyError:
            raise ValueError(
                f"Contract '{contract_name}' not found in registry, '{registry_filepath}', "
                f"for chain {chain_id}"
            )
        contract_instances.append(get_contract_container(contract_name).at(address))

    verify_contracts(contract_instances)


if __name__ == "__main__":
    cli()
