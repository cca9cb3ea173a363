"""Pydantic request models for the Photofolio API.

These models define the JSON schema for every endpoint that accepts a body.
FastAPI uses them for request validation and OpenAPI documentation.  Wire
names are camelCase (``imageIds``, ``photoId``) to match the dashboard
front-end; the Python attributes are snake_case.

Models
------
AssignCategoryRequest / ReorderCategoryRequest
    The two shapes accepted by ``PUT /api/category``, told apart by the
    ``action`` discriminator (see :data:`CategoryUpdateRequest`).
EditCategoryPhotoRequest
    Payload for ``PATCH /api/category``.
BatchAssignRequest
    Payload for ``POST /api/category/batch``.
RenameCategoryRequest
    Payload for ``POST /api/category/rename``.
RegisterImageRequest / UpdateImageAltRequest
    Payloads for ``POST`` and ``PUT /api/images``.
HomepageReplaceRequest / PinRequest / PinMoveRequest
    Payloads for the homepage endpoints.
SettingsRequest
    Payload for ``POST /api/settings``.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

Variant = Literal["original", "square"]


class ApiModel(BaseModel):
    """Base model accepting either the camelCase alias or the field name."""

    model_config = ConfigDict(populate_by_name=True)


class CategoryPhoto(ApiModel):
    """One entry inside a category's ``images`` array.

    Unknown keys are kept so a reorder never drops fields the client sent
    back unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    url: str | None = None
    file_name: str | None = None
    alt: str | None = None
    variant: Variant | None = None
    uploaded_at: str | None = None


class AssignCategoryRequest(ApiModel):
    """Move one image into a category (or out of all of them).

    Attributes:
        action: Always ``"assign"``.
        id: Image id.
        slug: Target category slug.  ``None`` or blank uncategorizes.
        variant: Display variant; when omitted the previous one is kept.
    """

    action: Literal["assign"]
    id: str = Field(..., description="Image id to assign.")
    slug: str | None = Field(default=None, description="Target slug, blank to uncategorize.")
    variant: Variant | None = Field(default=None)


class ReorderCategoryRequest(ApiModel):
    """Replace a category's image array with a reordered copy."""

    action: Literal["reorder"]
    slug: str = Field(..., min_length=1)
    photos: list[CategoryPhoto] = Field(..., min_length=1)


CategoryUpdateRequest = Annotated[
    AssignCategoryRequest | ReorderCategoryRequest,
    Field(discriminator="action"),
]


class EditCategoryPhotoRequest(ApiModel):
    """Overwrite some fields of one entry inside a category."""

    slug: str = Field(..., min_length=1)
    photo_id: str = Field(..., alias="photoId", min_length=1)
    alt: str | None = None
    url: str | None = None
    variant: Variant | None = None


class BatchAssignRequest(ApiModel):
    image_ids: list[str] = Field(..., alias="imageIds", min_length=1)
    slug: str = Field(..., min_length=1)
    variant: Variant = "original"


class RenameCategoryRequest(ApiModel):
    old_slug: str = Field(..., alias="oldSlug", min_length=1)
    new_slug: str = Field(..., alias="newSlug", min_length=1)


class RegisterImageRequest(ApiModel):
    """Metadata produced by the upload pipeline after a Telegram upload."""

    id: str | None = None
    url: str = Field(..., min_length=1)
    file_id: str | None = None
    file_name: str | None = None
    file_size: int | None = Field(default=None, ge=0)
    file_type: str | None = None
    uploaded_at: str | None = None
    alt: str | None = None
    telegram_file_path: str | None = None


class UpdateImageAltRequest(ApiModel):
    id: str = Field(..., min_length=1)
    alt: str | None = None


class PinEntry(ApiModel):
    photo_id: str = Field(..., alias="photoId", min_length=1)
    order: int | None = None


class HomepageReplaceRequest(ApiModel):
    selected_photos: list[PinEntry] = Field(..., alias="selectedPhotos")


class PinRequest(ApiModel):
    photo_id: str = Field(..., alias="photoId", min_length=1)


class PinMoveRequest(ApiModel):
    from_index: int = Field(..., alias="fromIndex")
    to_index: int = Field(..., alias="toIndex")


class TelegramChat(ApiModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    name: str | None = None
    bot_token: str | None = Field(default=None, alias="botToken")
    chat_id: str | None = Field(default=None, alias="chatId")
    is_default: bool | None = Field(default=None, alias="isDefault")


class SettingsRequest(ApiModel):
    telegram_chats: list[TelegramChat] = Field(..., alias="telegramChats")
