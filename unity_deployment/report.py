import click

from unity_deployment.adoption import AdoptionResult, AdoptionStatus, ProxyState
from unity_deployment.deployer import ModuleDeployment

_REPAIR_HINTS = {
    AdoptionStatus.ADDRESS_UNRESOLVED: "Check the addresses and the connected network.",
    AdoptionStatus.NOMINATION_FAILED: (
        "Check that the account administers the proxy, then run the adoption again."
    ),
    AdoptionStatus.ACCEPTANCE_FAILED: (
        "Check the proxy's pending implementation, then rerun the adoption with --accept-only."
    ),
    AdoptionStatus.CONSISTENCY_MISMATCH: "Inspect the proxy before retrying anything.",
}


def report_adoption(result: AdoptionResult) -> int:
    """Prints an adoption outcome and returns the matching exit code."""
    if result.ok:
        click.secho(f"(✓) {result}", fg="green")
        return 0

    click.secho(f"(!) Adoption failed during {result.failed_step.value}", fg="red")
    click.secho(f"    {result.error}", fg="red")
    click.echo(f"    proxy: {result.proxy.contract_name} {result.proxy.address}")
    click.echo(f"    implementation: {result.candidate.contract_name} {result.candidate.address}")
    click.secho(f"    {_REPAIR_HINTS[result.status]}", fg="yellow")
    return 1


def report_deployment(deployment: ModuleDeployment) -> int:
    """Prints a module deployment outcome and returns the matching exit code."""
    click.secho(f"\n{deployment.plan.module} module", fg="green" if deployment.ok else "red")
    for contract in deployment.contracts:
        click.secho(f"    {contract.name} {contract.address}", fg="cyan")

    if deployment.error is not None:
        click.secho(f"(!) {deployment.error}", fg="red")
        return 1

    if deployment.adoption is None:
        return 0
    return report_adoption(deployment.adoption)


def report_proxy_state(proxy_name: str, state: ProxyState, expected: str = None) -> None:
    click.secho(f"{proxy_name}", fg="green")
    click.secho(f"    pending: {state.pending}", fg="cyan")
    click.secho(f"    current: {state.current}", fg="cyan")
    if expected is None:
        return
    if state.current == expected:
        click.secho(f"    {expected} is adopted", fg="green")
    elif state.pending == expected:
        click.secho(f"    {expected} is nominated but not accepted", fg="yellow")
    else:
        click.secho(f"    {expected} is neither nominated nor adopted", fg="red")
