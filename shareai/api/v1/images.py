"""Image catalog endpoints: public listing/detail, org-scoped mutations, collect and favorites."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from shareai.api.deps import get_image_service, read_upload
from shareai.api.v1.auth import get_current_user, get_optional_user
from shareai.core.errors import ValidationError
from shareai.schemas.auth import MessageResponse
from shareai.schemas.image import ImageCreate, ImageListResponse, ImageResponse, ImageUpdate
from shareai.services.auth import AuthContext
from shareai.services.images import ImageService

router = APIRouter()
org_router = APIRouter()
favorites_router = APIRouter()

PageQuery = Annotated[int | None, Query(description="Page number, default 1")]
PageSizeQuery = Annotated[int | None, Query(description="Items per page, default 10, max 100")]
SearchQuery = Annotated[str | None, Query(max_length=255, description="Match name or description")]
LabelsQuery = Annotated[
    list[str] | None, Query(description="Only images carrying all of these labels")
]
SortQuery = Annotated[str | None, Query(description="stars, created_at or updated_at")]


def _build(model: type[BaseModel], fields: dict[str, Any]) -> Any:
    """Validate form fields into model, reporting failures as a 400."""
    try:
        return model.model_validate({k: v for k, v in fields.items() if v is not None})
    except SchemaValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationError(f"{loc}: {first.get('msg')}" if loc else first.get("msg")) from e


@router.get("", response_model=ImageListResponse)
def list_images(
    images: Annotated[ImageService, Depends(get_image_service)],
    caller: Annotated[AuthContext | None, Depends(get_optional_user)],
    page: PageQuery = None,
    page_size: PageSizeQuery = None,
    search: SearchQuery = None,
    labels: LabelsQuery = None,
    sort: SortQuery = None,
) -> ImageListResponse:
    """
    List catalog images, newest first by default.

    Filter by `search` (name/description substring) and repeated `labels`
    (an image must carry every requested label). `is_starred` reflects the
    caller when a valid token is sent.
    """
    items, total = images.list_images(
        page=page,
        page_size=page_size,
        search=search,
        labels=labels,
        sort=sort,
        caller_id=caller.user_id if caller else None,
    )
    return ImageListResponse(data=items, total=total)


@router.get("/{image_id}", response_model=ImageResponse)
def get_image(
    image_id: str,
    images: Annotated[ImageService, Depends(get_image_service)],
    caller: Annotated[AuthContext | None, Depends(get_optional_user)],
) -> ImageResponse:
    return images.get_image(image_id, caller.user_id if caller else None)


@router.post("/{image_id}/collect", response_model=MessageResponse)
def collect_image(
    image_id: str,
    current_user: Annotated[AuthContext, Depends(get_current_user)],
    images: Annotated[ImageService, Depends(get_image_service)],
) -> MessageResponse:
    images.collect(current_user.user_id, image_id)
    return MessageResponse(message="Image collected successfully")


@router.delete("/{image_id}/collect", response_model=MessageResponse)
def uncollect_image(
    image_id: str,
    current_user: Annotated[AuthContext, Depends(get_current_user)],
    images: Annotated[ImageService, Depends(get_image_service)],
) -> MessageResponse:
    images.uncollect(current_user.user_id, image_id)
    return MessageResponse(message="Image removed from collection")


@org_router.get("/public/images", response_model=ImageListResponse)
def list_public_images(
    images: Annotated[ImageService, Depends(get_image_service)],
    caller: Annotated[AuthContext | None, Depends(get_optional_user)],
    page: PageQuery = None,
    page_size: PageSizeQuery = None,
    search: SearchQuery = None,
    labels: LabelsQuery = None,
    sort: SortQuery = None,
) -> ImageListResponse:
    """Alias of GET /images."""
    return list_images(images, caller, page, page_size, search, labels, sort)


@org_router.post(
    "/{org_id}/images", response_model=ImageResponse, status_code=status.HTTP_201_CREATED
)
async def create_image(
    org_id: str,
    current_user: Annotated[AuthContext, Depends(get_current_user)],
    images: Annotated[ImageService, Depends(get_image_service)],
    name: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    registry: Annotated[str | None, Form()] = None,
    namespace: Annotated[str | None, Form()] = None,
    repository: Annotated[str | None, Form()] = None,
    tag: Annotated[str | None, Form()] = None,
    digest: Annotated[str | None, Form()] = None,
    size: Annotated[int | None, Form()] = None,
    visibility: Annotated[str | None, Form()] = None,
    platform: Annotated[str | None, Form()] = None,
    labels: Annotated[list[str] | None, Form()] = None,
    readme_file: Annotated[UploadFile | None, File()] = None,
) -> ImageResponse:
    """
    Publish an image under `org_id` ("public" for the public org) as multipart form.

    Labels that do not exist yet are created. The optional `readme_file` must be
    markdown or plain text.
    """
    data = _build(
        ImageCreate,
        {
            "name": name,
            "description": description,
            "registry": registry,
            "namespace": namespace,
            "repository": repository,
            "tag": tag,
            "digest": digest,
            "size": size,
            "visibility": visibility,
            "platform": platform,
            "labels": labels,
        },
    )
    readme = await read_upload(readme_file)
    return images.create_image(data, current_user.user_id, org_id, readme=readme)


@org_router.put("/{org_id}/images/{image_id}", response_model=ImageResponse)
async def update_image(
    org_id: str,
    image_id: str,
    current_user: Annotated[AuthContext, Depends(get_current_user)],
    images: Annotated[ImageService, Depends(get_image_service)],
    name: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    registry: Annotated[str | None, Form()] = None,
    namespace: Annotated[str | None, Form()] = None,
    repository: Annotated[str | None, Form()] = None,
    tag: Annotated[str | None, Form()] = None,
    visibility: Annotated[str | None, Form()] = None,
    platform: Annotated[str | None, Form()] = None,
    labels: Annotated[list[str] | None, Form()] = None,
    readme_file: Annotated[UploadFile | None, File()] = None,
) -> ImageResponse:
    """Update an image you authored; empty fields are left unchanged."""
    data = _build(
        ImageUpdate,
        {
            "name": name,
            "description": description,
            "registry": registry,
            "namespace": namespace,
            "repository": repository,
            "tag": tag,
            "visibility": visibility or None,
            "platform": platform,
            "labels": labels,
        },
    )
    readme = await read_upload(readme_file)
    return images.update_image(image_id, data, current_user.user_id, readme=readme)


@org_router.delete("/{org_id}/images/{image_id}", response_model=MessageResponse)
def delete_image(
    org_id: str,
    image_id: str,
    current_user: Annotated[AuthContext, Depends(get_current_user)],
    images: Annotated[ImageService, Depends(get_image_service)],
) -> MessageResponse:
    """Delete an image you authored, with its collections and label links."""
    images.delete_image(image_id, current_user.user_id)
    return MessageResponse(message="Image deleted successfully")


@favorites_router.get("", response_model=ImageListResponse)
def list_favorites(
    current_user: Annotated[AuthContext, Depends(get_current_user)],
    images: Annotated[ImageService, Depends(get_image_service)],
    page: PageQuery = None,
    page_size: PageSizeQuery = None,
    search: SearchQuery = None,
    labels: LabelsQuery = None,
    sort: SortQuery = None,
) -> ImageListResponse:
    """Images the caller has collected, with the same filters as GET /images."""
    items, total = images.list_favorites(
        current_user.user_id,
        page=page,
        page_size=page_size,
        search=search,
        labels=labels,
        sort=sort,
    )
    return ImageListResponse(data=items, total=total)
