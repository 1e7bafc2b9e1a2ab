"""Pydantic models for API request/response structures.

Response Structure:
    All successful responses use ResponseEnvelope with:
    - data: The actual response payload (any type)
    - meta: Metadata including timestamp, version, and optional total count

Error Structure:
    All error responses use ErrorEnvelope with:
    - error: ErrorDetail containing code and message

Request bodies:
    WriteCreate / WriteUpdate / CommentCreate / CommentUpdate carry only the
    columns a client may set. Updates are merges: routes pass
    model_dump(exclude_unset=True) to the write service so that omitted
    fields are left untouched.

Query parameters:
    WriteSearchQuery collects the list/search parameters (sca, sfl, stx, sop,
    sst, sod, spt, page, per_page) as a FastAPI query-parameter model.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from board_api.models.board_models import MAX_PAGE_ROWS, SearchParams


class MetaModel(BaseModel):
    """Metadata included in all successful responses.

    Attributes:
        timestamp: ISO 8601 formatted UTC timestamp of the response
        version: API version string
        total: Optional total count of items (used with pagination)
    """
    timestamp: str
    version: str
    total: Optional[int] = None


class ResponseEnvelope(BaseModel):
    """Standard response envelope for all successful API responses."""
    data: Any
    meta: MetaModel


class ErrorDetail(BaseModel):
    """Error details included in error responses.

    Attributes:
        code: Machine-readable error code (see responses.py for constants)
        message: Human-readable error message
    """
    code: str
    message: str


class ErrorEnvelope(BaseModel):
    """Standard error envelope for all error responses."""
    error: ErrorDetail


class WriteSearchQuery(BaseModel):
    """Query parameters for list, view and neighbor lookups.

    Used as a FastAPI query-parameter model:

        @router.get("")
        async def list_writes(query: Annotated[WriteSearchQuery, Query()]):
            search = query.to_search_params()
    """
    sca: str = Field(default="", max_length=255, description="Category filter")
    sfl: str = Field(default="wr_subject||wr_content", max_length=255, description="Search fields, '||' separated; ',0' searches comments")
    stx: str = Field(default="", max_length=255, description="Search keyword(s), space separated")
    sop: str = Field(default="and", max_length=3, description="Operator between keywords (and/or)")
    sst: str = Field(default="", max_length=50, description="Sort field")
    sod: str = Field(default="", max_length=4, description="Sort direction (asc/desc)")
    spt: Optional[int] = Field(default=None, le=0, description="Search window start (thread number)")
    page: int = Field(default=1, ge=1, description="1-based page number")
    per_page: Optional[int] = Field(default=None, ge=1, le=MAX_PAGE_ROWS, description="Page size")

    def to_search_params(self) -> SearchParams:
        return SearchParams(
            sca=self.sca,
            sfl=self.sfl,
            stx=self.stx,
            sop=self.sop,
            sst=self.sst,
            sod=self.sod,
            spt=self.spt,
            page=self.page,
            per_page=self.per_page,
        )


class WriteCreate(BaseModel):
    """Body of POST /boards/{bo_table}/writes and .../replies."""
    wr_subject: str = Field(min_length=1, max_length=255)
    wr_content: str = Field(min_length=1)
    ca_name: str = Field(default="", max_length=255)
    wr_option: str = Field(default="", max_length=40)
    wr_link1: str = ""
    wr_link2: str = ""
    wr_name: Optional[str] = Field(default=None, max_length=255)
    wr_email: str = Field(default="", max_length=255)
    wr_homepage: str = Field(default="", max_length=255)
    mb_id: str = Field(default="", max_length=20, description="Author member id (anonymous when empty)")


class WriteUpdate(BaseModel):
    """Body of PUT /boards/{bo_table}/writes/{wr_id}; only set fields are written."""
    wr_subject: Optional[str] = Field(default=None, min_length=1, max_length=255)
    wr_content: Optional[str] = Field(default=None, min_length=1)
    ca_name: Optional[str] = Field(default=None, max_length=255)
    wr_option: Optional[str] = Field(default=None, max_length=40)
    wr_link1: Optional[str] = None
    wr_link2: Optional[str] = None
    wr_name: Optional[str] = Field(default=None, max_length=255)
    wr_email: Optional[str] = Field(default=None, max_length=255)
    wr_homepage: Optional[str] = Field(default=None, max_length=255)


class CommentCreate(BaseModel):
    """Body of POST /boards/{bo_table}/writes/{wr_id}/comments.

    comment_id replies to an existing comment of the same post.
    """
    wr_content: str = Field(min_length=1)
    wr_option: str = Field(default="", max_length=40)
    wr_name: Optional[str] = Field(default=None, max_length=255)
    mb_id: str = Field(default="", max_length=20)
    comment_id: Optional[int] = Field(default=None, ge=1)


class CommentUpdate(BaseModel):
    wr_content: Optional[str] = Field(default=None, min_length=1)
    wr_option: Optional[str] = Field(default=None, max_length=40)


class NeighborWrite(BaseModel):
    """Previous/next post link shown on the post view."""
    wr_id: int
    wr_subject: str = ""
    wr_datetime: str = ""
    href: str = ""


class WriteListPage(BaseModel):
    """Payload of GET /boards/{bo_table}/writes."""
    notice_writes: List[dict]
    writes: List[dict]
    total_count: int
    page: int
    per_page: int
    total_pages: int
    spt: Optional[int] = None
    prev_spt: int = 0
    next_spt: int = 0
