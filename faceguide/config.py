"""Centralized configuration using Pydantic Settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FACEGUIDE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Landmark detector
    model_path: Path = Field(
        default=Path(__file__).parent.parent / "models" / "face_landmarker.task",
        description="Path to the MediaPipe FaceLandmarker .task model",
    )
    model_url: str = Field(
        default="https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/1/face_landmarker.task",
        description="Download URL for the FaceLandmarker model",
    )
    max_num_faces: int = Field(default=1, ge=1, description="Maximum number of faces tracked")
    refine_landmarks: bool = Field(default=True, description="Keep iris landmarks (478 instead of 468)")
    min_detection_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    min_tracking_confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    # Readiness thresholds
    lighting_threshold: float = Field(default=100.0, description="Mean brightness (0-255) above which lighting is good")
    center_threshold: float = Field(default=0.1, gt=0.0, description="Max center offset as a fraction of frame size")

    # Capture
    camera_index: int | str = Field(default=0, description="OpenCV camera index, device path or stream URL")
    capture_width: int = Field(default=640, description="Requested capture width")
    capture_height: int = Field(default=480, description="Requested capture height")
    target_fps: float = Field(default=30.0, gt=0.0, description="Requested capture frame rate")

    # Display
    container_width: int = Field(default=640, gt=0, description="Viewport width")
    container_height: int = Field(default=480, gt=0, description="Viewport height")
    fit_mode: Literal["contain", "cover"] = Field(default="contain", description="Video fit policy")
    overlay_color: str = Field(default="#F2D668", description="Landmark mesh color (hex)")
    overlay_line_width: int = Field(default=1, ge=1)

    # Host channel
    snapshot_interval: float = Field(
        default=1.0, ge=0.0, description="Seconds between PNG snapshots in host messages (0 = every frame)"
    )
    api_host: str = Field(default="0.0.0.0", description="API bind address")
    api_port: int = Field(default=8000, description="API port")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Origins allowed to embed the host channel",
    )

    log_level: str = Field(default="INFO", description="Logging level")

    def ensure_model_dir(self) -> Path:
        """Create the model directory if it doesn't exist."""
        self.model_path.parent.mkdir(parents=True, exist_ok=True)
        return self.model_path.parent


# Global settings instance
settings = Settings()
