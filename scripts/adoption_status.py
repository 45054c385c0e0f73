#!/usr/bin/python3

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, account_option, network_option

from unity_deployment.adoption import ProxyAdoptionOrchestrator, ProxyUnreadable
from unity_deployment.chain import ApeChainClient
from unity_deployment.options import module_option, params_filepath_option, registry_filepath_option
from unity_deployment.plan import DeploymentPlan
from unity_deployment.registry import contracts_from_registry
from unity_deployment.report import report_proxy_state
from unity_deployment.utils import _load_yaml, get_artifact_filepath, params_filepath_from_network


@click.command(cls=ConnectedProviderCommand, name="adoption-status")
@account_option()
@network_option(required=True)
@module_option
@params_filepath_option
@registry_filepath_option
def cli(account, network, module, params_filepath, registry_filepath):
    """Show the pending and current implementation of a module's proxy."""
    params_filepath = params_filepath or params_filepath_from_network(network.name)
    config = _load_yaml(params_filepath)
    plan = DeploymentPlan.from_config(config, module)
    if not plan.uses_proxy_adoption:
        raise click.BadParameter(f"{module} does not use proxy adoption", param_hint="--module")

    registry_filepath = registry_filepath or get_artifact_filepath(config)
    chain_id = networks.active_provider.chain_id
    addresses = contracts_from_registry(registry_filepath, chain_id=chain_id)
    try:
        request = plan.adoption_request(addresses)
    except KeyError as e:
        raise click.UsageError(f"{e} not found in {registry_filepath} for chain {chain_id}")

    orchestrator = ProxyAdoptionOrchestrator(client=ApeChainClient(account=account, autosign=True))
    try:
        state = orchestrator.inspect(request.proxy)
    except ProxyUnreadable as e:
        raise click.ClickException(str(e))
    report_proxy_state(
        proxy_name=f"{request.proxy.contract_name} {request.proxy.address}",
        state=state,
        expected=request.candidate.address,
    )


if __name__ == "__main__":
    cli()
