from typing import List, Optional

from pydantic import BaseModel

from vidrelay.models.response import PaginationInfo, VideoListing

class PageResult(BaseModel):
    """Outcome of fetching one listing page (failures are tagged, not raised)"""
    page: int
    url: str
    success: bool
    results: List[VideoListing] = []
    pagination: Optional[PaginationInfo] = None
    status: Optional[int] = None
    error: Optional[str] = None
