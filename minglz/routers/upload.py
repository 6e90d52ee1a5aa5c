from fastapi import APIRouter, Depends, File, UploadFile

from minglz.core.deps import get_current_user
from minglz.integrations.storage_client import StorageClient, get_storage_client
from minglz.models.user import User
from minglz.services.uploads import upload_image

router = APIRouter(prefix="/api", tags=["Upload"])


@router.post("/upload-image")
async def upload(
    file: UploadFile | None = File(default=None),
    current_user: User = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage_client),
):
    return await upload_image(user_id=current_user.id, file=file, storage=storage)
