"""
Request/response pieces shared by the record routers.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, UploadFile
from pydantic import BaseModel, Field

from carbonledger.core.batch_operations import BatchInsertResult
from carbonledger.core.config import get_settings


class BulkEntriesRequest(BaseModel):
    entries: List[Dict[str, Any]] = Field(
        ..., description="Records to insert; all are committed or none are"
    )


class BulkResultResponse(BaseModel):
    count: int
    skipped: int = 0
    inserted_ids: List[str] = []
    duration_seconds: Optional[float] = None
    message: str


def bulk_response(result: BatchInsertResult, label: str) -> Dict[str, Any]:
    data = result.to_dict()
    data["message"] = f"Committed {result.rows_inserted} {label}"
    return data


async def read_upload(file: UploadFile) -> bytes:
    """Read an uploaded file, enforcing the configured size limit."""
    settings = get_settings()
    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes / (1024 * 1024)
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Maximum size is {limit_mb:g}MB",
        )
    return content
