from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..models import ConversionSettings


class SettingsPayload(BaseModel):
    """Per-request overrides; keys mirror the stored settings."""

    model_config = ConfigDict(populate_by_name=True)

    page_size: str | None = Field(default=None, alias="pageSize")
    orientation: str | None = None
    margin: float | None = None
    filename: str | None = None
    include_fonts: bool | None = Field(default=None, alias="includeFonts")
    render_code_blocks: bool | None = Field(default=None, alias="renderCodeBlocks")

    def apply(self, base: ConversionSettings) -> ConversionSettings:
        return ConversionSettings.from_mapping(self.model_dump(exclude_none=True), base=base)


class HTMLConvertRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    html: str
    base_url: str | None = Field(default=None, alias="baseUrl")
    backend: str | None = None
    settings: SettingsPayload = Field(default_factory=SettingsPayload)


class PageConvertRequest(BaseModel):
    url: str
    selector: str | None = None
    backend: str | None = None
    settings: SettingsPayload = Field(default_factory=SettingsPayload)


class HealthStatus(BaseModel):
    status: str
    version: str
    backend: str


class ErrorDetail(BaseModel):
    code: str
    stage: str
    message: str


__all__ = [
    "ErrorDetail",
    "HTMLConvertRequest",
    "HealthStatus",
    "PageConvertRequest",
    "SettingsPayload",
]
