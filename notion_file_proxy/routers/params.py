"""Query parameter checks shared by the file endpoints."""

from fastapi import HTTPException, status


def require_file_params(block_id: str | None, page_id: str | None) -> tuple[str, str]:
    """Return ``(block_id, page_id)`` or raise 400 naming the first missing one."""
    if not block_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing blockId parameter"
        )
    if not page_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing pageId parameter"
        )
    return block_id, page_id


def invalid_page_id() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid pageId parameter"
    )
