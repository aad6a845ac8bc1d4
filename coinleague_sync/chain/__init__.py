from .errors import ChainReadError, ErrorKind, NoRpcEndpointsError, classify_error
from .health import EndpointHealth
from .reader import ResilientChainReader
from .transport import Web3Transport

__all__ = [
    "ChainReadError",
    "EndpointHealth",
    "ErrorKind",
    "NoRpcEndpointsError",
    "ResilientChainReader",
    "Web3Transport",
    "classify_error",
]
