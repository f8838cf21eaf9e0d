from dataclasses import dataclass

from fastapi import HTTPException, UploadFile, status

IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png"}
TEMPLATE_FILE_TYPES = IMAGE_TYPES | {"application/zip", "application/x-zip-compressed"}


@dataclass
class UploadedBlob:
    filename: str
    content_type: str
    data: bytes


async def read_upload(file: UploadFile, allowed_types: set[str], max_bytes: int, field: str) -> UploadedBlob:
    if file.content_type not in allowed_types:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type for {field}: {file.content_type}",
        )
    data = await file.read()
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File {file.filename} in {field} exceeds {max_bytes // (1024 * 1024)} MB",
        )
    return UploadedBlob(filename=file.filename or field, content_type=file.content_type, data=data)


async def read_uploads(
    files: list[UploadFile] | None,
    allowed_types: set[str],
    max_bytes: int,
    max_count: int,
    field: str,
) -> list[UploadedBlob]:
    # Browsers send an empty part when no file is chosen.
    files = [file for file in (files or []) if file.filename]
    if len(files) > max_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {max_count} files allowed for {field}",
        )
    return [await read_upload(file, allowed_types, max_bytes, field) for file in files]
