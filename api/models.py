"""
API request and response models for the Entry HTTP surface.

These Pydantic v2 models define the HTTP transport contract. They are
separate from the dataclasses in pastes/models.py, which own the internal
domain representation. Route handlers map between the two.

Wire field names are PascalCase (CustomURL, EditPassword, ...) for
compatibility with existing Entry clients; Python attribute names stay
snake_case through aliases.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from pastes.metadata import metadata_to_dict
from pastes.models import Paste

# ---------------------------------------------------------------------------
# Request models (JSON bodies). Form endpoints declare Form() params instead.
# ---------------------------------------------------------------------------


class _PascalRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class MetadataEditRequest(_PascalRequest):
    """Body for POST /api/metadata. Metadata holds PascalCase metadata keys to merge."""

    custom_url: str = Field(alias="CustomURL", min_length=1)
    edit_password: str = Field(default="", alias="EditPassword")
    metadata: dict[str, Any] = Field(alias="Metadata")


class AdminRequest(_PascalRequest):
    admin_password: str = Field(alias="AdminPassword")


class AdminImportRequest(AdminRequest):
    pastes: list[dict[str, Any]] = Field(alias="Pastes")


class AdminMassDeleteRequest(AdminRequest):
    pastes: list[str] = Field(alias="Pastes", min_length=1)


class AdminLogsExportRequest(AdminRequest):
    log_type: Optional[str] = Field(default=None, alias="Type")


class AdminLogsDeleteRequest(AdminRequest):
    ids: list[str] = Field(alias="IDs", min_length=1)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class PasteResponse(BaseModel):
    """Client-safe paste record.

    Built only from pastes the store has already cleaned: EditPassword and
    GroupSubmitPassword never appear, ViewPassword is "exists" or "".
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    custom_url: str = Field(alias="CustomURL")
    content: str = Field(alias="Content")
    view_password: str = Field(default="", alias="ViewPassword")
    pub_date: int = Field(default=0, alias="PubDate")
    edit_date: int = Field(default=0, alias="EditDate")
    group_name: str = Field(default="", alias="GroupName")
    metadata: Optional[dict[str, Any]] = Field(default=None, alias="Metadata")
    expire_on: Optional[int] = Field(default=None, alias="ExpireOn")
    views: int = Field(default=0, alias="Views")
    comments: int = Field(default=0, alias="Comments")
    host_server: Optional[str] = Field(default=None, alias="HostServer")

    @classmethod
    def from_paste(cls, paste: Paste) -> "PasteResponse":
        return cls(
            custom_url=paste.custom_url,
            content=paste.content,
            view_password=paste.view_password,
            pub_date=paste.pub_date,
            edit_date=paste.edit_date,
            group_name=paste.group_name,
            metadata=metadata_to_dict(paste.metadata) if paste.metadata else None,
            expire_on=paste.expire_on,
            views=paste.views,
            comments=paste.comments,
            host_server=paste.host_server,
        )


class AssociationResponse(BaseModel):
    """Response for GET /api/association."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    associated: bool = Field(alias="Associated")
    custom_url: Optional[str] = Field(default=None, alias="CustomURL")


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


# ---------------------------------------------------------------------------
# NodeInfo (https://nodeinfo.diaspora.software/)
# ---------------------------------------------------------------------------


class NodeInfoLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    rel: str
    href: str


class NodeInfoLinks(BaseModel):
    model_config = ConfigDict(frozen=True)

    links: list[NodeInfoLink]


class NodeInfoSoftware(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "entry"
    version: str


class NodeInfoUsers(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total: int
    active_month: int = Field(default=0, alias="activeMonth")
    active_halfyear: int = Field(default=0, alias="activeHalfyear")


class NodeInfoUsage(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    users: NodeInfoUsers
    local_posts: int = Field(alias="localPosts")


class NodeInfoServices(BaseModel):
    model_config = ConfigDict(frozen=True)

    inbound: list[str] = []
    outbound: list[str] = []


class NodeInfo(BaseModel):
    """NodeInfo 2.0 document."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str = "2.0"
    software: NodeInfoSoftware
    protocols: list[str] = ["entry"]
    services: NodeInfoServices = NodeInfoServices()
    usage: NodeInfoUsage
    open_registrations: bool = Field(default=False, alias="openRegistrations")
    metadata: dict[str, Any] = {}
