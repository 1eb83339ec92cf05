"""
Custom exceptions for the provider plugin system.
"""

from ..errors import MirrorError


class ProviderRegistrationError(MirrorError):
    """Error during provider registration or lookup."""
    error_code = "provider_registration_error"
