"""Task source adapters."""

from .providers import SUPPORTED_PROVIDERS, ProviderBuildResult, build_provider_from_config

__all__ = ["SUPPORTED_PROVIDERS", "ProviderBuildResult", "build_provider_from_config"]
