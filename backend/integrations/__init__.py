"""External API integrations.

This package contains:
- Provider protocol: canonical records and the common provider interface
- Provider registry: manages the SimpleFIN and Solana providers
- Resilient HTTP transport shared by every outbound call
- Price oracles: CoinGecko (SOL) and Jupiter (SPL tokens)
"""

from integrations.provider_protocol import (
    ProviderAccount,
    ProviderClient,
    ProviderSnapshot,
    ProviderSyncResult,
    ProviderTransaction,
)
from integrations.provider_registry import ProviderRegistry, get_provider_registry

__all__ = [
    "ProviderAccount",
    "ProviderClient",
    "ProviderRegistry",
    "ProviderSnapshot",
    "ProviderSyncResult",
    "ProviderTransaction",
    "get_provider_registry",
]
