"""Token metadata lookup."""

from .token_registry import (
    TokenMetadata,
    TokenMetadataCache,
    TokenMetadataService,
    NATIVE_TOKEN,
)
