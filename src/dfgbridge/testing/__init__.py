"""Test harness for the DFG bridge."""

from .harness import (
    DEFAULT_LZ_RECEIVE_GAS,
    DEFAULT_NATIVE_FUNDING,
    BridgeDeployment,
    deploy_bridge_pair,
    lz_receive_options,
)

__all__ = [
    "BridgeDeployment",
    "deploy_bridge_pair",
    "lz_receive_options",
    "DEFAULT_LZ_RECEIVE_GAS",
    "DEFAULT_NATIVE_FUNDING",
]
