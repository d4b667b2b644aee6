"""Image endpoint serving cached attachments."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from vaultsync.api.deps import get_store
from vaultsync.services.image_service import find_image, get_image_bytes, guess_media_type
from vaultsync.storage.base import ContentStore

router = APIRouter(tags=["images"])


@router.get("/image/{name}")
async def get_image_endpoint(
    name: str,
    store: Annotated[ContentStore, Depends(get_store)],
) -> Response:
    image = await find_image(store, name)
    if image is None:
        raise HTTPException(status_code=404, detail="Image not found")
    data = await get_image_bytes(store, image)
    return Response(
        content=data,
        media_type=guess_media_type(image.name),
        headers={"ETag": f'"{image.content_hash}"'},
    )
