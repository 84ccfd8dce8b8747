from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from faceguide.pipeline import PipelineState


class HostMessage(BaseModel):
    """Per-frame message for the embedding host (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    lighting: bool
    position: bool
    face_found: bool = Field(alias="faceFound")
    image: Optional[str] = Field(default=None, description="data:image/png;base64 snapshot")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class StateMessage(BaseModel):
    """Pipeline lifecycle change pushed to the host."""
    state: PipelineState
    error: Optional[str] = None


class StatusResponse(BaseModel):
    face_detected: bool = False
    face_centered: bool = False
    lighting_good: bool = False
    brightness: Optional[float] = None
    frame_index: Optional[int] = None
    state: PipelineState = PipelineState.STOPPED
    error: Optional[str] = None
