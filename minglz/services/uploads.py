from __future__ import annotations

import secrets
import string
import time
import uuid

from fastapi import HTTPException, UploadFile
from loguru import logger

from minglz.core.config import settings
from minglz.integrations.storage_client import StorageClient

UPLOAD_PREFIX = "landing-pages"
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def build_object_path(user_id: uuid.UUID, filename: str | None, *, now_ms: int | None = None) -> str:
    ext = "bin"
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[-1].lower() or ext
    ms = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"{UPLOAD_PREFIX}/{user_id}/{ms}-{suffix}.{ext}"


async def upload_image(
    *,
    user_id: uuid.UUID,
    file: UploadFile | None,
    storage: StorageClient,
) -> dict:
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="파일이 없습니다.")

    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="이미지 파일만 업로드 가능합니다.")

    max_bytes = settings.UPLOAD_MAX_BYTES
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise HTTPException(status_code=400, detail=f"파일 크기는 {limit_mb}MB 이하여야 합니다.")

    path = build_object_path(user_id, file.filename)

    try:
        await storage.upload(path, content, content_type)
    except Exception as e:
        logger.exception("Image upload failed", path=path)
        raise HTTPException(
            status_code=500,
            detail={"error": f"이미지 업로드에 실패했습니다: {e}", "details": str(e)},
        )

    logger.info("Image uploaded", path=path, size=len(content))
    return {"success": True, "url": storage.public_url(path), "path": path}
