"""Request models for genbatch API."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from genbatch.core.batch.models import JobAssets


class StartBatchRequest(BaseModel):
    """Request for POST /api/start-batch endpoint."""

    provider: str = Field("WaveSpeed", description="Provider name: 'WaveSpeed' or 'Fal'")
    prompt: str = Field(..., min_length=1, description="Generation prompt")
    subject_url: Optional[str] = Field(
        None, alias="subjectUrl", description="Optional subject image URL"
    )
    reference_urls: List[str] = Field(
        default_factory=list,
        alias="referenceUrls",
        description="Reference image URLs (list or comma separated)",
    )
    width: int = Field(1024, ge=64, le=4096)
    height: int = Field(1024, ge=64, le=4096)
    count: int = Field(1, ge=1, le=50, description="Number of jobs in the batch")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "provider": "WaveSpeed",
                    "prompt": "A lighthouse at dusk, oil painting",
                    "subject_url": "https://example.com/subject.png",
                    "reference_urls": ["https://example.com/style.png"],
                    "width": 1024,
                    "height": 1024,
                    "count": 4,
                }
            ]
        },
    }

    @field_validator("subject_url", mode="before")
    @classmethod
    def blank_subject_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty form field as no subject."""
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("reference_urls", mode="before")
    @classmethod
    def split_reference_urls(cls, v):
        """Accept a comma-separated string as well as a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    def assets(self) -> JobAssets:
        return JobAssets(subject_url=self.subject_url, reference_urls=list(self.reference_urls))
