import click
from eth_utils import to_checksum_address

from unity_deployment.constants import MODULES


class ChecksumAddress(click.ParamType):
    name = "checksum_address"

    def convert(self, value, param, ctx):
        try:
            value = to_checksum_address(value=value)
        except ValueError:
            self.fail(f"{value} is not a valid address", param, ctx)
        else:
            return value


class ModuleName(click.Choice):
    """A module name from the deployment catalogue."""

    name = "module"

    def __init__(self):
        super().__init__(MODULES, case_sensitive=False)

    def convert(self, value, param, ctx):
        return super().convert(value, param, ctx).lower()
