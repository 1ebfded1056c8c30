"""Ethereum access exceptions mapped to verifier error codes.

RPC failures are transport faults (recoverable). Callers translate them
into the fault type of the check they serve.
"""

from app.opencerts.api_models import ErrorCode


class EthereumError(Exception):
    """Base exception for chain access.

    Carries an error code that maps to ErrorCode constants.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class RpcError(EthereumError):
    """JSON-RPC request failed or returned an error object.

    Used when:
    - The node is unreachable or times out
    - The HTTP status is not 2xx
    - The response carries a JSON-RPC ``error`` member
    - The response is not valid JSON-RPC
    """

    def __init__(self, message: str = "JSON-RPC request failed"):
        super().__init__(ErrorCode.RPC_FAILED, message)


class CallReverted(RpcError):
    """``eth_call`` executed but the contract reverted or returned nothing.

    Distinct from transport failures: the node answered, the contract did not.
    """

    def __init__(self, message: str = "Contract call reverted"):
        super().__init__(message)
