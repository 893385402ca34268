"""
URL-list CSV upload endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status

from app.api.dependencies import get_url_list_upload
from app.schemas.audit import URLUploadResponse
from app.services.url_upload_service import (
    URLUploadError,
    URLUploadService,
    URLUploadTooLargeError,
    get_url_upload_service,
)

router = APIRouter(tags=["upload"])


@router.post("/upload-csv", response_model=URLUploadResponse)
def upload_url_list(
    file: UploadFile = Depends(get_url_list_upload),
    service: URLUploadService = Depends(get_url_upload_service),
) -> URLUploadResponse:
    try:
        urls = service.extract_urls(file)
    except URLUploadTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(exc),
        ) from exc
    except URLUploadError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    finally:
        file.file.close()

    return URLUploadResponse(success=True, urls=urls)
