"""File upload endpoint."""

from fastapi import APIRouter, Depends, File, UploadFile

from app.auth.middleware import AuthenticatedUser, get_current_user
from app.auth.rate_limit import check_rate_limit
from app.schemas.upload import UploadResponse
from app.services import storage

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post(
    "/images",
    response_model=UploadResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def upload_image(
    file: UploadFile = File(...),
    auth: AuthenticatedUser = Depends(get_current_user),
) -> UploadResponse:
    """Store an image (e.g. job photos) and return its URL."""
    data = await file.read()
    url = await storage.upload_file(
        data, file.content_type, file.filename, prefix=f"images/{auth.user_id}",
    )
    return UploadResponse(url=url, content_type=file.content_type, size_bytes=len(data))
