"""Security utilities exposed for convenience."""

from .auth import get_current_principal, principal_from_payload

__all__ = ["get_current_principal", "principal_from_payload"]
