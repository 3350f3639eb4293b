"""
Pydantic schemas for the visibility API.

Bodies use the camelCase keys the front-end widget sends; snake_case
names are accepted too.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from visibility.models import ServiceRequest


# ---------------------------------------------------------------------------
# Analyze
# ---------------------------------------------------------------------------

class AnalyzeRequest(BaseModel):
    """Request body for POST /api/analyze."""

    model_config = ConfigDict(populate_by_name=True)

    business_name: Optional[str] = Field(default=None, alias="businessName")
    website_url: Optional[str] = Field(default=None, alias="websiteUrl")
    service_area: Optional[str] = Field(default=None, alias="serviceArea")
    business_type: Optional[str] = Field(default=None, alias="businessType")
    place_id: Optional[str] = Field(default=None, alias="placeId")
    fast: bool = False
    site_only: bool = Field(default=False, alias="siteOnly")
    no_cache: bool = Field(default=False, alias="noCache")

    def to_service_request(self) -> ServiceRequest:
        return ServiceRequest(
            business_name=self.business_name,
            website_url=self.website_url,
            service_area=self.service_area,
            business_type=self.business_type,
            fast=self.fast,
            site_only=self.site_only,
            place_id=self.place_id,
            no_cache=self.no_cache,
        )


# ---------------------------------------------------------------------------
# Competitive snapshot
# ---------------------------------------------------------------------------

class CompetitiveSnapshotRequest(BaseModel):
    """Request body for POST /api/competitive-snapshot."""

    model_config = ConfigDict(populate_by_name=True)

    place_id: str = Field(alias="placeId", min_length=1)
    business_type: Optional[str] = Field(default=None, alias="businessType")
    limit: Optional[int] = None

    @field_validator("place_id")
    @classmethod
    def place_id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("placeId must not be blank")
        return value


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    maps_key_present: bool = Field(alias="mapsKeyPresent")
    embed_key_present: bool = Field(alias="embedKeyPresent")
    llm_key_present: bool = Field(alias="llmKeyPresent")
    ad_scrape_enabled: bool = Field(alias="adScrapeEnabled")
    env: str
    rubric_version: str = Field(alias="rubricVersion")
