"""
bgtheme API Schemas
Pydantic models for theme derivation request/response validation.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""
    ok: bool = Field(True, description="Service health status")
    version: str = Field(..., description="Service version")
    service: str = Field("bgtheme", description="Service name")


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str = Field(..., description="Error message")


class ThemeDeriveRequest(BaseModel):
    """JSON body for deriving a theme from a base64 encoded image."""
    image_b64: str = Field(
        ...,
        min_length=1,
        description="Base64 encoded image, optionally with a data URL prefix"
    )


class ThemeColors(BaseModel):
    """Resolved role colors as hex strings."""
    accent: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$")
    background: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$")
    neutral: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$")
    text: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class ThemeComponents(BaseModel):
    """Resolved role colors as normalized sRGB components."""
    accent: List[float] = Field(..., min_length=3, max_length=3)
    background: List[float] = Field(..., min_length=4, max_length=4, description="RGBA")
    neutral: List[float] = Field(..., min_length=3, max_length=3)
    text: Optional[List[float]] = Field(None, min_length=3, max_length=3)


class CandidateEntry(BaseModel):
    """One ranked cluster centroid."""
    lab: List[float] = Field(..., min_length=3, max_length=3)
    weight: float = Field(..., ge=0.0, le=1.0)


class ThemeResponse(BaseModel):
    """Theme derivation response."""
    derivation_id: str
    mode: str = Field(..., pattern="^(dark|light)$")
    identity: str
    theme: ThemeColors
    components: ThemeComponents
    palette: Dict[str, str] = Field(..., description="Synchronized secondary palette slots")
    ranked: List[CandidateEntry] = Field(default_factory=list)
    cache_source: str = Field(..., pattern="^(none|raw|final)$")
    persisted_to: Optional[str] = None
    timings_ms: Dict[str, float] = Field(default_factory=dict)


class StoredThemeResponse(BaseModel):
    """Theme currently persisted for a mode."""
    mode: str
    theme: ThemeColors
    components: ThemeComponents
