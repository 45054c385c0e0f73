from pathlib import Path

import click

from unity_deployment.types import ChecksumAddress, ModuleName

module_option = click.option(
    "--module",
    "-m",
    help="Module to operate on",
    type=ModuleName(),
    required=True,
)

params_filepath_option = click.option(
    "--params-filepath",
    "-p",
    help="Constructor parameters YAML; defaults to the one of the connected network",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)

registry_filepath_option = click.option(
    "--registry-filepath",
    "-f",
    help="Registry to read deployed addresses from; defaults to the params file's artifact",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)

verify_adoption_option = click.option(
    "--verify-adoption",
    help="Read the proxy's current implementation back once the handshake is confirmed.",
    is_flag=True,
)

publish_option = click.option(
    "--publish",
    help="Publish deployed contracts to the block explorer.",
    is_flag=True,
)

auto_option = click.option(
    "--auto",
    help="Automatically sign transactions.",
    is_flag=True,
)

proxy_address_option = click.option(
    "--proxy",
    "proxy_address",
    help="Address of the proxy; overrides the registry.",
    type=ChecksumAddress(),
    required=False,
)

implementation_address_option = click.option(
    "--implementation",
    "implementation_address",
    help="Address of the implementation; overrides the registry.",
    type=ChecksumAddress(),
    required=False,
)
