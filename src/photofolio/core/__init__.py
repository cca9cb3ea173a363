"""Core services for Photofolio.

Layers
------
1. **Configuration** (config.py): Pydantic Settings, ``PHOTOFOLIO_`` prefix.
2. **Storage** (store.py, firestore_store.py): the ``DocumentStore``
   interface with JSON-file and Firestore implementations.
3. **Auth** (auth.py, firebase.py): bearer token verification.
4. **Services**:
   - images.py: uploaded image metadata
   - categories.py: categories and membership reconciliation
   - homepage.py: homepage pin list
   - settings_store.py: per-user Telegram chat settings
   - image_proxy.py: image bytes fetched from their stored URL

Every expected failure is a subclass of ``PhotofolioError`` (errors.py).
"""

from photofolio.core.categories import CategoryService
from photofolio.core.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    PhotofolioError,
    StoreError,
    ValidationError,
)
from photofolio.core.homepage import HomepageService
from photofolio.core.images import ImageService
from photofolio.core.store import DocumentStore, JsonDocumentStore

__all__ = [
    "AuthError",
    "CategoryService",
    "ConflictError",
    "DocumentStore",
    "HomepageService",
    "ImageService",
    "JsonDocumentStore",
    "NotFoundError",
    "PhotofolioError",
    "StoreError",
    "ValidationError",
]
