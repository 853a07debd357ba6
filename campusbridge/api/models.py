"""
API request and response schemas.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""
    error: str
    details: Optional[str] = None


class HealthResponse(BaseModel):
    ok: bool = True


class WakeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    awake_at: str = Field(..., alias="awakeAt")


class RejectRequest(BaseModel):
    """Body of a rejection request."""
    reason: Optional[str] = Field(None, max_length=2000)


class ProcessResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Processing complete"
    dropbox_url: str = Field(..., alias="dropboxUrl")


class RejectResponse(BaseModel):
    message: str = "Material rejected and deleted successfully"


class UploadTestResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    dropbox_path: str = Field(..., alias="dropboxPath")
    dropbox_url: str = Field(..., alias="dropboxUrl")
