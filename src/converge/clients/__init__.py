"""Remote Client implementations.

Cloud adapters live in their own modules (``aws``, ``arm``) so that the
reconciliation core imports without the cloud SDKs being loaded.
"""

from .base import CompositeClient, RemoteClient

__all__ = ["CompositeClient", "RemoteClient"]
