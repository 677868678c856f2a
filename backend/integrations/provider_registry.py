"""Provider registry for managing multiple data aggregation providers.

The registry is responsible for:
- Initializing and tracking available providers
- Providing access to specific providers by name
- Listing all registered providers
"""

import importlib
import logging
from typing import Any

from integrations.provider_protocol import ProviderClient

logger = logging.getLogger(__name__)

# Each tuple is (provider_name, module_path, class_name).
# Adding a new provider only requires appending one entry here.
PROVIDER_DEFINITIONS: list[tuple[str, str, str]] = [
    ("SimpleFIN", "integrations.simplefin_client", "SimpleFINClient"),
    ("Solana", "integrations.solana_client", "SolanaClient"),
]

ALL_PROVIDER_NAMES: list[str] = [name for name, _, _ in PROVIDER_DEFINITIONS]


class ProviderRegistry:
    """Registry for managing multiple data aggregation providers.

    Every known provider is registered whether or not it is configured:
    an unconfigured provider reports its own configuration error during
    sync instead of silently disappearing from the results.

    Example:
        registry = ProviderRegistry()
        registry.initialize_default_providers({"Solana": {"wallet_addresses": [...]}})
        result = await registry.get_provider("Solana").sync_all(user_id)
    """

    def __init__(self):
        """Initialize the registry with no providers."""
        self._providers: dict[str, ProviderClient] = {}

    def register_provider(self, provider: ProviderClient) -> None:
        """Register a provider client.

        Args:
            provider: A provider client implementing ProviderClient protocol.
        """
        self._providers[provider.provider_name] = provider

    def get_provider(self, name: str) -> ProviderClient:
        """Get a provider by name.

        Raises:
            ValueError: If the provider is not registered.
        """
        if name not in self._providers:
            raise ValueError(f"Provider '{name}' is not registered")
        return self._providers[name]

    def list_providers(self) -> list[str]:
        """List all registered provider names."""
        return list(self._providers.keys())

    def is_configured(self, name: str) -> bool:
        """Check if a provider is registered and has credentials."""
        provider = self._providers.get(name)
        return provider is not None and provider.is_configured()

    def initialize_default_providers(
        self, provider_kwargs: dict[str, dict[str, Any]] | None = None
    ) -> None:
        """Instantiate and register every provider in PROVIDER_DEFINITIONS.

        Args:
            provider_kwargs: Constructor keyword arguments per provider name
                (e.g. the user's SimpleFIN access URL).
        """
        provider_kwargs = provider_kwargs or {}
        for name, module_path, class_name in PROVIDER_DEFINITIONS:
            module = importlib.import_module(module_path)
            cls = getattr(module, class_name)
            instance = cls(**provider_kwargs.get(name, {}))
            self.register_provider(instance)
            logger.debug(
                "Provider registered: %s (%s)",
                name, "configured" if instance.is_configured() else "not configured",
            )


def get_provider_registry(
    provider_kwargs: dict[str, dict[str, Any]] | None = None,
) -> ProviderRegistry:
    """Create a provider registry with all default providers registered."""
    registry = ProviderRegistry()
    registry.initialize_default_providers(provider_kwargs)
    return registry
