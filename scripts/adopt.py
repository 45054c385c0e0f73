#!/usr/bin/python3

import sys

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, account_option, network_option

from unity_deployment.adoption import ProxyAdoptionOrchestrator
from unity_deployment.chain import ApeChainClient
from unity_deployment.confirm import _confirm_adoption
from unity_deployment.options import (
    auto_option,
    implementation_address_option,
    module_option,
    params_filepath_option,
    proxy_address_option,
    registry_filepath_option,
    verify_adoption_option,
)
from unity_deployment.plan import DeploymentPlan
from unity_deployment.registry import contracts_from_registry
from unity_deployment.report import report_adoption
from unity_deployment.utils import _load_yaml, get_artifact_filepath, params_filepath_from_network


@click.command(cls=ConnectedProviderCommand, name="adopt")
@account_option()
@network_option(required=True)
@module_option
@params_filepath_option
@registry_filepath_option
@proxy_address_option
@implementation_address_option
@click.option(
    "--accept-only",
    help="Only redo the acceptance; for proxies that already nominated the implementation.",
    is_flag=True,
)
@verify_adoption_option
@auto_option
def cli(
    account,
    network,
    module,
    params_filepath,
    registry_filepath,
    proxy_address,
    implementation_address,
    accept_only,
    verify_adoption,
    auto,
):
    """Hand an already deployed proxy over to an already deployed implementation."""
    params_filepath = params_filepath or params_filepath_from_network(network.name)
    config = _load_yaml(params_filepath)
    plan = DeploymentPlan.from_config(config, module)
    if not plan.uses_proxy_adoption:
        raise click.BadParameter(f"{module} does not use proxy adoption", param_hint="--module")

    addresses = dict()
    registry_filepath = registry_filepath or get_artifact_filepath(config)
    if registry_filepath.exists():
        chain_id = networks.active_provider.chain_id
        addresses.update(contracts_from_registry(registry_filepath, chain_id=chain_id))
    if proxy_address:
        addresses[plan.adoption.proxy] = proxy_address
    if implementation_address:
        addresses[plan.adoption.implementation] = implementation_address

    required = (plan.adoption.implementation, plan.adoption.proxy)
    missing = [name for name in required if name not in addresses]
    if missing:
        raise click.UsageError(
            f"No address for {', '.join(missing)} in {registry_filepath}; "
            "pass --proxy/--implementation."
        )

    request = plan.adoption_request(addresses)
    client = ApeChainClient(account=account, autosign=auto)
    orchestrator = ProxyAdoptionOrchestrator(client=client, verify=verify_adoption)
    if not auto:
        _confirm_adoption(request.proxy.contract_name, request.candidate.contract_name)

    if accept_only:
        result = orchestrator.resume(request.proxy, request.candidate)
    else:
        result = orchestrator.adopt(request.proxy, request.candidate)

    exit_code = report_adoption(result)
    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    cli()
