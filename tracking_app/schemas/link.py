from pydantic import BaseModel, HttpUrl, Field, TypeAdapter, computed_field, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError
from typing import Optional
from datetime import datetime
from tracking_app.config import settings

ALIAS_PATTERN = r"^[A-Za-z0-9_-]+$"

_http_url = TypeAdapter(HttpUrl)


class LinkBase(BaseModel):
    alias: str = Field(
        ...,
        min_length=1,
        max_length=settings.alias_max_length,
        pattern=ALIAS_PATTERN,
        description="Short name used in the tracking URL"
    )
    target_url: str = Field(..., description="Destination URL")
    description: Optional[str] = Field(None, max_length=500)
    expires_at: Optional[datetime] = Field(None, description="When the link stops resolving")

    @field_validator("target_url")
    @classmethod
    def check_http_url(cls, value: str) -> str:
        """Validate as an http(s) URL but keep the caller's spelling"""
        try:
            _http_url.validate_python(value)
        except PydanticValidationError as e:
            raise ValueError(e.errors()[0]["msg"]) from None
        return value


class LinkCreate(LinkBase):
    pass


class LinkResponse(BaseModel):
    """Serializes the SQLAlchemy Link model (from_attributes=True)"""
    id: str
    alias: str
    target_url: str
    description: Optional[str] = None
    created_at: datetime
    expires_at: Optional[datetime] = None
    click_count: int
    is_active: bool

    @computed_field
    @property
    def tracking_url(self) -> str:
        return f"{settings.base_url}/l/{self.alias}"

    model_config = ConfigDict(from_attributes=True)


class LinkWithStats(LinkResponse):
    total_clicks: int = 0
    unique_visitors: int = 0
