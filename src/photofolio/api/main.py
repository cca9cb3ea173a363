"""Photofolio — FastAPI Application.

This module defines the FastAPI application, every REST route, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :data:`~photofolio.core.config.config`
  (``PHOTOFOLIO_*`` environment variables and ``.env``).
- **Dependencies** (document store, token verifier, services) are built once
  in the lifespan handler and stored on ``app.state``.  Nothing is created
  lazily at module level, so tests pass their own store, verifier and
  HTTP client to :func:`create_app`.
- **Errors** raised by the services are subclasses of
  :class:`~photofolio.core.errors.PhotofolioError` and are rendered as
  ``{"error": message}`` with the status code the error carries.
- Handlers are plain ``def`` functions: the store does blocking I/O, so
  FastAPI runs them in its threadpool.

Endpoints
---------
========  ================================  =====  ==============================
Method    Path                              Auth   Purpose
========  ================================  =====  ==============================
GET       ``/api/health``                   no     Liveness and version
GET       ``/api/images``                   yes    List uploaded images
POST      ``/api/images``                   yes    Register uploaded image
PUT       ``/api/images``                   yes    Edit alt text
DELETE    ``/api/images?id=``               yes    Delete image record
GET       ``/api/category``                 yes    List categories
PUT       ``/api/category``                 yes    Assign image / reorder photos
PATCH     ``/api/category``                 yes    Edit one photo entry
DELETE    ``/api/category?slug=&photoId=``  yes    Remove photo from category
POST      ``/api/category/batch``           yes    Batch assignment
POST      ``/api/category/rename``          yes    Rename category
GET       ``/api/gallery/{slug}``           no     Public category read
GET       ``/api/homepage``                 no     Pin list
POST      ``/api/homepage``                 yes    Replace pin list
POST      ``/api/homepage/pins``            yes    Pin a photo
DELETE    ``/api/homepage/pins/{id}``       yes    Unpin a photo
PUT       ``/api/homepage/pins/order``      yes    Move a pin
GET       ``/api/homepage/images``          no     Pinned images, resolved
GET       ``/api/homepage/image/{id}``      no     Image bytes, proxied
GET       ``/api/settings``                 yes    Telegram chats
POST      ``/api/settings``                 yes    Save Telegram chats
GET       ``/api/settings/upload-chat``     yes    Chat uploads go to
========  ================================  =====  ==============================

Usage
-----
CLI (installed entry point)::

    photofolio

Direct invocation::

    python -m photofolio.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from photofolio import __version__
from photofolio.api.models import (
    AssignCategoryRequest,
    BatchAssignRequest,
    CategoryUpdateRequest,
    EditCategoryPhotoRequest,
    HomepageReplaceRequest,
    PinMoveRequest,
    PinRequest,
    RegisterImageRequest,
    RenameCategoryRequest,
    SettingsRequest,
    UpdateImageAltRequest,
)
from photofolio.core.auth import (
    AuthUser,
    FirebaseTokenVerifier,
    StaticTokenVerifier,
    TokenVerifier,
    extract_bearer_token,
)
from photofolio.core.categories import CategoryService
from photofolio.core.config import PhotofolioConfig, config
from photofolio.core.errors import PhotofolioError, ValidationError
from photofolio.core.homepage import HomepageService
from photofolio.core.image_proxy import ImageProxy
from photofolio.core.images import ImageService
from photofolio.core.settings_store import SettingsService
from photofolio.core.store import DocumentStore, JsonDocumentStore

logger = logging.getLogger(__name__)

IMAGE_CACHE_CONTROL = "public, max-age=31536000, immutable"


# ---------------------------------------------------------------------------
# Dependency construction.
# ---------------------------------------------------------------------------


@dataclass
class Services:
    """Everything a route handler needs, built once per process."""

    images: ImageService
    categories: CategoryService
    homepage: HomepageService
    settings: SettingsService
    image_proxy: ImageProxy


def build_services(
    store: DocumentStore,
    cfg: PhotofolioConfig,
    http_client: httpx.Client | None = None,
) -> Services:
    images = ImageService(store, cfg.images_collection)
    return Services(
        images=images,
        categories=CategoryService(store, cfg.categories_collection, images),
        homepage=HomepageService(store, cfg.homepage_collection, images),
        settings=SettingsService(store, cfg.settings_collection),
        image_proxy=ImageProxy(images, http_client, timeout=cfg.image_fetch_timeout),
    )


def build_store(cfg: PhotofolioConfig) -> DocumentStore:
    """Construct the document store selected by ``cfg.store_backend``."""
    if cfg.store_backend == "firestore":
        from photofolio.core.firebase import get_firebase_app
        from photofolio.core.firestore_store import FirestoreDocumentStore

        return FirestoreDocumentStore.from_app(get_firebase_app(cfg))
    return JsonDocumentStore(cfg.data_dir)


def build_verifier(cfg: PhotofolioConfig) -> TokenVerifier:
    """Construct the token verifier selected by ``cfg.auth_backend``."""
    if cfg.auth_backend == "static":
        return StaticTokenVerifier(cfg.static_token or "")
    from photofolio.core.firebase import get_firebase_app

    return FirebaseTokenVerifier(get_firebase_app(cfg))


# ---------------------------------------------------------------------------
# Request dependencies.
# ---------------------------------------------------------------------------


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_user(
    request: Request,
    authorization: str | None = Header(default=None),
) -> AuthUser:
    """Verify the bearer token and return the caller.

    Raises:
        AuthError: If the header is missing or the token is rejected.
    """
    token = extract_bearer_token(authorization)
    return request.app.state.verifier.verify(token)


# ---------------------------------------------------------------------------
# Error handlers.
# ---------------------------------------------------------------------------


async def _photofolio_error_handler(request: Request, exc: PhotofolioError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error in {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    cfg: PhotofolioConfig | None = None,
    *,
    store: DocumentStore | None = None,
    verifier: TokenVerifier | None = None,
    http_client: httpx.Client | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        cfg: Configuration; defaults to the global ``config``.
        store: Pre-built document store.  Built from *cfg* when omitted.
        verifier: Pre-built token verifier.  Built from *cfg* when omitted.
        http_client: HTTP client for the image proxy.  A private client is
            created (and closed on shutdown) when omitted.

    Returns:
        A configured FastAPI instance.  Dependencies are attached to
        ``app.state`` when the lifespan starts.
    """
    cfg = cfg or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # --- Startup -------------------------------------------------------
        app_store = store or build_store(cfg)
        app.state.verifier = verifier or build_verifier(cfg)
        app.state.services = build_services(app_store, cfg, http_client)
        logger.info(
            f"Photofolio {__version__} started "
            f"(store={type(app_store).__name__}, auth={type(app.state.verifier).__name__})"
        )

        yield

        # --- Shutdown ------------------------------------------------------
        app.state.services.image_proxy.close()
        logger.info("Photofolio shutting down.")

    app = FastAPI(
        title="Photofolio",
        description="Photo portfolio API: images, categories, and homepage curation.",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(PhotofolioError, _photofolio_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    # -----------------------------------------------------------------------
    # Health.
    # -----------------------------------------------------------------------

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok", "version": __version__}

    # -----------------------------------------------------------------------
    # Images.
    # -----------------------------------------------------------------------

    @app.get("/api/images")
    def list_images(
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        """Return every uploaded image, newest first."""
        return {"images": services.images.list_images()}

    @app.post("/api/images")
    def register_image(
        req: RegisterImageRequest,
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        """Store metadata for an image the upload pipeline sent to Telegram."""
        record = services.images.register(req.model_dump(exclude_none=True), uploaded_by=user.uid)
        return {"success": True, **record}

    @app.put("/api/images")
    def update_image_alt(
        req: UpdateImageAltRequest,
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        services.images.update_alt(req.id, req.alt)
        return {"success": True, "message": "Image updated successfully"}

    @app.delete("/api/images")
    def delete_image(
        id: str | None = Query(default=None),
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        """Delete an image record.  Category entries and pins are left dangling."""
        services.images.delete(id or "")
        return {"success": True, "message": "Image deleted successfully"}

    # -----------------------------------------------------------------------
    # Categories.
    # -----------------------------------------------------------------------

    @app.get("/api/category")
    def list_categories(
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        return {"categories": services.categories.list_categories()}

    @app.put("/api/category")
    def update_category(
        req: CategoryUpdateRequest,
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        """Assign one image to a category, or reorder a category's photos.

        The body's ``action`` field selects the operation:

        - ``assign``: ``{id, slug, variant}``.  A blank slug removes the
          image from every category.
        - ``reorder``: ``{slug, photos}``.  The array replaces the stored one
          verbatim.
        """
        if isinstance(req, AssignCategoryRequest):
            result = services.categories.assign(req.id, req.slug, req.variant)
            message = (
                "Image category updated successfully"
                if result["moved"] or result["slug"] is None
                else "Image updated in same category"
            )
            return {
                "success": True,
                "message": message,
                "slug": result["slug"],
                "variant": result["variant"],
            }

        services.categories.reorder(
            req.slug, [photo.model_dump(exclude_none=True) for photo in req.photos]
        )
        return {"success": True, "message": "Photos reordered successfully"}

    @app.patch("/api/category")
    def edit_category_photo(
        req: EditCategoryPhotoRequest,
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        photo = services.categories.edit_photo(
            req.slug,
            req.photo_id,
            req.model_dump(include={"alt", "url", "variant"}, exclude_none=True),
        )
        return {"success": True, "message": "Photo updated successfully", "photo": photo}

    @app.delete("/api/category")
    def remove_category_photo(
        slug: str | None = Query(default=None),
        photo_id: str | None = Query(default=None, alias="photoId"),
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        if not slug or not photo_id:
            raise ValidationError("Slug and photoId are required")
        deleted = services.categories.remove_photo(slug, photo_id)
        return {
            "success": True,
            "message": "Photo deleted successfully",
            "categoryDeleted": deleted,
        }

    @app.post("/api/category/batch")
    def batch_assign(
        req: BatchAssignRequest,
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        count = services.categories.assign_batch(req.image_ids, req.slug, req.variant)
        slug = req.slug.strip()
        return {
            "success": True,
            "message": f"Successfully updated {count} images to slug: {slug}",
            "updatedCount": count,
        }

    @app.post("/api/category/rename")
    def rename_category(
        req: RenameCategoryRequest,
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        services.categories.rename(req.old_slug, req.new_slug)
        return {
            "success": True,
            "message": f"Successfully renamed {req.old_slug} to {req.new_slug}",
        }

    @app.get("/api/gallery/{slug}")
    def get_gallery(slug: str, services: Services = Depends(get_services)) -> dict:
        """Public read of one category.  Unknown slugs return no images."""
        category = services.categories.get_category(slug)
        if category is None:
            return {"slug": slug, "images": []}
        return category

    # -----------------------------------------------------------------------
    # Homepage.
    # -----------------------------------------------------------------------

    @app.get("/api/homepage")
    def get_homepage(services: Services = Depends(get_services)) -> dict:
        return {"selectedPhotos": services.homepage.get_pins()}

    @app.post("/api/homepage")
    def replace_homepage(
        req: HomepageReplaceRequest,
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        pins = services.homepage.replace(
            [pin.model_dump(by_alias=True, exclude_none=True) for pin in req.selected_photos]
        )
        return {"success": True, "selectedPhotos": pins}

    @app.post("/api/homepage/pins")
    def add_homepage_pin(
        req: PinRequest,
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        return {"success": True, "selectedPhotos": services.homepage.add(req.photo_id)}

    @app.put("/api/homepage/pins/order")
    def move_homepage_pin(
        req: PinMoveRequest,
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        pins = services.homepage.move(req.from_index, req.to_index)
        return {"success": True, "selectedPhotos": pins}

    @app.delete("/api/homepage/pins/{photo_id}")
    def remove_homepage_pin(
        photo_id: str,
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        return {"success": True, "selectedPhotos": services.homepage.remove(photo_id)}

    @app.get("/api/homepage/images")
    def get_homepage_images(services: Services = Depends(get_services)) -> dict:
        return {"images": services.homepage.pinned_images()}

    @app.get("/api/homepage/image/{image_id}")
    def get_homepage_image(image_id: str, services: Services = Depends(get_services)) -> Response:
        """Serve an image's bytes without exposing its Telegram file URL."""
        image = services.image_proxy.fetch(image_id)
        return Response(
            content=image.content,
            media_type=image.content_type,
            headers={"Cache-Control": IMAGE_CACHE_CONTROL},
        )

    # -----------------------------------------------------------------------
    # Telegram chat settings.
    # -----------------------------------------------------------------------

    @app.get("/api/settings")
    def get_settings(
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        return {"telegramChats": services.settings.get_chats(user.uid)}

    @app.post("/api/settings")
    def save_settings(
        req: SettingsRequest,
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        chats = services.settings.save_chats(
            user.uid,
            [chat.model_dump(by_alias=True, exclude_none=True) for chat in req.telegram_chats],
        )
        return {
            "success": True,
            "message": "Settings saved successfully",
            "telegramChats": chats,
        }

    @app.get("/api/settings/upload-chat")
    def get_upload_chat(
        chat_id: str | None = Query(default=None, alias="chatId"),
        user: AuthUser = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        """Return the Telegram chat an upload should be sent to."""
        chat = services.settings.resolve_chat(user.uid, chat_id)
        if chat is None:
            raise ValidationError("Configure a Telegram chat in Settings before uploading")
        return {"chat": chat}


# ---------------------------------------------------------------------------
# Module-level application for ``uvicorn photofolio.api.main:app``.
# ---------------------------------------------------------------------------
app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port, and log level from :data:`~photofolio.core.config.config`
    (``PHOTOFOLIO_SERVER_HOST``, ``PHOTOFOLIO_SERVER_PORT``,
    ``PHOTOFOLIO_LOG_LEVEL``).  Registered as the ``photofolio`` console
    script in ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "photofolio.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
