#!/usr/bin/python3

import sys

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from unity_deployment.chain import ApeChainClient
from unity_deployment.constants import MODULES
from unity_deployment.deployer import Deployer
from unity_deployment.options import (
    auto_option,
    params_filepath_option,
    publish_option,
    verify_adoption_option,
)
from unity_deployment.report import report_deployment
from unity_deployment.utils import check_explorer, is_local_network, params_filepath_from_network


def _deploy(module, account, network, params_filepath, verify_adoption, publish, auto):
    if publish:
        check_explorer()
    params_filepath = params_filepath or params_filepath_from_network(network.name)
    click.echo(f"Connected to {network.name} network.")

    client = ApeChainClient(account=account, autosign=auto, publish=publish)
    deployer = Deployer.from_yaml(
        filepath=params_filepath,
        module=module,
        client=client,
        verify_adoption=verify_adoption,
        autosign=auto,
        live=not is_local_network(),
    )
    deployment = None
    try:
        deployment = deployer.deploy()
    finally:
        # confirmed contracts are registered even if the run is interrupted
        deployer.finalize(deployment)

    exit_code = report_deployment(deployment)
    if exit_code:
        sys.exit(exit_code)


def _deploy_command(module: str) -> click.Command:
    @click.command(
        cls=ConnectedProviderCommand,
        name=f"deploy-{module}",
        help=f"Deploy the {module} module.",
    )
    @account_option()
    @network_option(required=True)
    @params_filepath_option
    @verify_adoption_option
    @publish_option
    @auto_option
    def command(account, network, params_filepath, verify_adoption, publish, auto):
        _deploy(module, account, network, params_filepath, verify_adoption, publish, auto)

    return command


@click.group()
def cli():
    """Deploy Unity modules, one subcommand per module."""


for _module in MODULES:
    cli.add_command(_deploy_command(_module))


if __name__ == "__main__":
    cli()
