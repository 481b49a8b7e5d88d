"""
muntanyers Backend: Avatar File Route
=====================================

What:  Serves stored avatars under the URL recorded in users.avatar_url.
       Names are resolved inside the avatar directory only; anything that
       escapes it is a 404.
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from muntanyers.services.file_service import file_service

router = APIRouter(tags=["Uploads"])


@router.get(
    "/uploads/avatars/{filename}",
    summary="Serve an uploaded avatar",
    responses={200: {"description": "Image file"}, 404: {"description": "Not found"}},
)
async def serve_avatar(filename: str) -> FileResponse:
    path = file_service.resolve_avatar(filename)
    return FileResponse(
        path=str(path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
