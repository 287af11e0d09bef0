"""In-process collaborators: an envelope-encryption gateway and a versioned
document store. Intended for development and tests, not for production data.
"""

from .gateway import LocalGateway, AccessDenied
from .store import MemoryDocumentStore

__all__ = [
    "LocalGateway",
    "AccessDenied",
    "MemoryDocumentStore",
]
