"""
app/api/dependencies.py

Request dependencies shared by the upload endpoints.
"""

from __future__ import annotations

from fastapi import File, HTTPException, UploadFile, status

URL_LIST_CONTENT_TYPES = frozenset(
    {
        "text/csv",
        "application/csv",
        "application/vnd.ms-excel",
    }
)


def _is_url_list_upload(upload: UploadFile) -> bool:
    filename = (upload.filename or "").strip().lower()
    # Browsers disagree on CSV MIME types; either signal is enough.
    media_type = (upload.content_type or "").split(";", 1)[0].strip().lower()
    return filename.endswith(".csv") or media_type in URL_LIST_CONTENT_TYPES


def get_url_list_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Accept the multipart ``file`` field only when it looks like a CSV URL list.
    """

    if not _is_url_list_upload(file):
        file.file.close()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )
    return file
