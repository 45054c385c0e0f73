from enum import Enum
from pathlib import Path

import unity_deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(unity_deployment.__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"

#
# Networks
#

MAINNET = "mainnet"
TESTNET = "testnet"
LOCAL = "local"

SUPPORTED_NETWORKS = [MAINNET, TESTNET, LOCAL]

#
# Modules
#


class ModuleKind(Enum):
    VAULT = "vault"
    CONTROLLER = "controller"
    CONVERTER = "converter"
    TOKEN = "token"
    RATE_MODEL = "rate-model"
    MARKET = "market"
    ORACLE = "oracle"
    GOVERNOR = "governor"
    TIMELOCK = "timelock"
    LENS = "lens"
    STORE = "store"
    HELPER = "helper"


MODULES = [
    "lens",
    "ucore",
    "uai",
    "urt",
    "interest-model",
    "vcore",
    "uai-vault",
    "ucore-vault",
    "urt-vault",
    "maximillion",
    "ucore-store",
    "uai-controller",
    "timelock",
    "governor",
    "urt-converter",
    "oracle",
]

#
# Unitroller-style handshake
#

NOMINATE_FUNCTION = "_setPendingImplementation"
ACCEPT_FUNCTION = "_become"

DEFAULT_PENDING_GETTER = "pendingImplementation"
DEFAULT_CURRENT_GETTER = "implementation"
