"""
Report artifact download endpoint.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from app.config import get_audit_settings
from audit_engine.artifacts import ArtifactWriter

router = APIRouter(tags=["reports"])

_MEDIA_TYPES = {
    ".json": "application/json",
    ".html": "text/html; charset=utf-8",
    ".txt": "text/plain; charset=utf-8",
}


@lru_cache(maxsize=1)
def get_artifact_writer() -> ArtifactWriter:
    settings = get_audit_settings()
    return ArtifactWriter(settings.reports_dir, url_prefix=settings.reports_url_prefix)


@router.get("/reports/{filename}")
def download_report(
    filename: str,
    writer: ArtifactWriter = Depends(get_artifact_writer),
) -> FileResponse:
    path = writer.resolve(filename)
    if path is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Report not found: {filename}",
        )
    return FileResponse(
        path,
        media_type=_MEDIA_TYPES.get(path.suffix.lower(), "application/octet-stream"),
        filename=path.name,
        content_disposition_type="inline",
    )
