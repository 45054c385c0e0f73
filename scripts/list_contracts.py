#!/usr/bin/python3


from itertools import groupby
from typing import List, Optional, Tuple

import click
from ape.cli import ConnectedProviderCommand

from unity_deployment.constants import SUPPORTED_NETWORKS
from unity_deployment.registry import RegistryEntry, read_registry
from unity_deployment.utils import (
    _load_yaml,
    get_artifact_filepath,
    get_chain_name,
    params_filepath_from_network,
)


def _format_chain_name(chain_name: str) -> str:
    """Format the chain name to capitalize each word and join with slashes."""
    return "/".join(word.capitalize() for word in chain_name.split())


def _get_registry_entries(
    network_name: Optional[str] = None,
) -> List[Tuple[str, List[RegistryEntry]]]:
    """Parse the registry files of the given network profile or of all profiles."""
    registry_entries = list()
    for profile in SUPPORTED_NETWORKS:
        if network_name and network_name != profile:
            continue
        config = _load_yaml(params_filepath_from_network(profile))
        registry_filepath = get_artifact_filepath(config)
        if not registry_filepath.exists():
            continue
        entries = read_registry(filepath=registry_filepath)
        registry_entries.append((profile, entries))
    return registry_entries


def _display_registry_entries(registry_entries: List[Tuple[str, List[RegistryEntry]]]) -> None:
    """Display registry entries grouped by chain ID."""
    for profile, entries in registry_entries:
        grouped_entries = groupby(entries, key=lambda e: e.chain_id)
        click.secho(f"\n{profile.capitalize()}", fg="green")

        for chain_id, chain_entries in grouped_entries:
            chain_name = _format_chain_name(get_chain_name(chain_id))
            click.secho(f"    {chain_name}", fg="yellow")

            for index, entry in enumerate(chain_entries, start=1):
                click.secho(f"        {index}. {entry.name} {entry.address}", fg="cyan")


@click.command(cls=ConnectedProviderCommand, name="list-contracts")
@click.option(
    "--profile",
    "network_name",
    help="Network profile whose registry is listed",
    type=click.Choice(SUPPORTED_NETWORKS),
)
def cli(network_name):
    """List all deployed contracts. Optionally filter by network profile."""
    registry_entries = _get_registry_entries(network_name)
    _display_registry_entries(registry_entries)


if __name__ == "__main__":
    cli()
