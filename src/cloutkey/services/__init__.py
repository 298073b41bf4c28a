"""Service layer."""

from cloutkey.services.identity import Identity, IdentityService, PrivateKey, get_identity_service

__all__ = ["Identity", "IdentityService", "PrivateKey", "get_identity_service"]
