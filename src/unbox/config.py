"""Configuration schema for unbox."""

from pydantic import BaseModel, Field, ConfigDict
from .common import LoggingConfig

# Size of the content prefix read for sniffing and of the copy buffer
DEFAULT_SNIFF_BYTES = 131_072
DEFAULT_COPY_BUFFER_SIZE = 131_072


class DetectionConfig(BaseModel):
    """Configuration for archive format detection."""

    model_config = ConfigDict(extra='forbid')

    sniff_bytes: int = Field(
        default=DEFAULT_SNIFF_BYTES,
        ge=512,
        description="Number of leading bytes inspected when sniffing content"
    )


class ExtractionConfig(BaseModel):
    """Configuration for unpacking and publishing."""

    model_config = ConfigDict(extra='forbid')

    destination: str = Field(
        default=".",
        description="Directory the unpacked item is published into"
    )
    skip_unknown: bool = Field(
        default=False,
        description="Silently skip inputs that are not known archives"
    )
    copy_buffer_size: int = Field(
        default=DEFAULT_COPY_BUFFER_SIZE,
        ge=4096,
        description="Buffer size in bytes used when copying entry data"
    )
    keep_failed_scratch: bool = Field(
        default=False,
        description="Leave the scratch directory in place when unpacking fails"
    )


class ProgressConfig(BaseModel):
    """Configuration for the progress display."""

    model_config = ConfigDict(extra='forbid')

    enabled: bool = Field(
        default=True,
        description="Show a live progress display on stderr"
    )
    refresh_per_second: float = Field(
        default=5.0,
        gt=0,
        description="Repaint rate of the progress display"
    )


class UnboxConfig(BaseModel):
    """Root configuration for unbox."""

    model_config = ConfigDict(extra='forbid')

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)
