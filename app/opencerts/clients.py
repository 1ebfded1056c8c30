"""Construction of the chain-backed verification collaborators from config.

Everything built here is per-run: a fresh orchestrator holds no state that
outlives a single verification.
"""

from typing import Optional

import httpx

from app.core import config
from .ethereum import (
    ChainNameResolver,
    DocumentStoreGateway,
    EnsResolver,
    EthRpcClient,
    IssuerRegistry,
)
from .identity import IssuerIdentityResolver
from .reporting import AnalyticsAdapter, GoogleAnalyticsAdapter, LoggingAnalytics, Reporter
from .verify import VerificationOrchestrator


def get_analytics() -> AnalyticsAdapter:
    """Analytics adapter selected by configuration."""
    if config.ANALYTICS_ENABLED and config.GA_TRACKING_ID:
        return GoogleAnalyticsAdapter(config.GA_TRACKING_ID, config.GA_COLLECT_URL)
    return LoggingAnalytics()


def build_orchestrator(
    reporter: Optional[Reporter] = None,
    analytics: Optional[AnalyticsAdapter] = None,
    rpc_url: Optional[str] = None,
    registry_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> VerificationOrchestrator:
    """Wire RPC, ENS, registry and gateway into an orchestrator.

    Args:
        reporter: Receives verdict events as they are emitted.
        analytics: Failure telemetry sink (defaults per configuration).
        rpc_url: Overrides OPENCERTS_ETH_RPC_URL.
        registry_url: Overrides OPENCERTS_REGISTRY_URL.
        transport: httpx transport shared by the RPC and registry clients.
    """
    rpc = EthRpcClient(
        rpc_url or config.ETH_RPC_URL,
        timeout=config.RPC_TIMEOUT_SECONDS,
        transport=transport,
    )
    ens = EnsResolver(rpc, config.ENS_REGISTRY_ADDRESS)
    registry = IssuerRegistry(
        registry_url or config.REGISTRY_URL,
        timeout=config.REGISTRY_TIMEOUT_SECONDS,
        transport=transport,
    )
    names = ChainNameResolver(ens, registry, text_key=config.ENS_TEXT_KEY)
    return VerificationOrchestrator(
        gateway=DocumentStoreGateway(rpc, ens),
        identity=IssuerIdentityResolver(names),
        reporter=reporter,
        analytics=analytics if analytics is not None else get_analytics(),
    )
