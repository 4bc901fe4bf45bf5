"""Configuration with JSON file, YAML overrides, and env variable support."""

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from artwork_pipeline.enums import SizeTargetName
from artwork_pipeline.models.domain import SizeTarget


ENV_PREFIX = "PIPELINE_"


def _find_repo_root(*, start: Path) -> Path:
    """Best-effort repository root discovery.

    Relative config paths resolve against the first directory containing
    `pyproject.toml`, falling back to the current working directory.
    """

    try:
        start = start.resolve()
        for p in [start, *start.parents]:
            if (p / "pyproject.toml").exists():
                return p
    except OSError:
        pass

    return Path.cwd()


def _load_yaml_overrides(path: Path) -> dict[str, Any]:
    """Load a YAML mapping of config overrides.

    Missing files and non-mapping documents yield an empty dict.
    """
    if not path.exists() or not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        return {}
    return data


class PipelineConfig(BaseSettings):
    """Configuration with JSON file + overrides.yml + env var support.

    Load order (later overrides earlier):
    1. config.json - base configuration
    2. overrides.yml - per-deployment overrides
    3. Environment variables - runtime overrides

    Prefix: PIPELINE_ (e.g., PIPELINE_IMAGES_BUCKET)
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # AWS settings
    aws_region: str = Field(default="us-east-1")
    localstack_endpoint: str | None = Field(default=None)

    # Buckets
    raw_images_bucket: str = Field(default="helodali-raw-images")
    images_bucket: str = Field(default="helodali-images")
    thumbs_bucket: str = Field(default="helodali-thumbs")
    large_images_bucket: str = Field(default="helodali-large-images")
    public_pages_bucket: str = Field(default="helodali-public-pages")

    # Document store tables
    identity_table: str = Field(default="openid")
    artwork_table: str = Field(default="artwork")

    # Derivative sizes (bounding boxes, shrink-only)
    thumb_max_dimension: int = Field(default=240, gt=0)
    image_max_dimension: int = Field(default=480, gt=0)
    large_image_max_dimension: int = Field(default=960, gt=0)
    jpeg_quality: int = Field(default=100, ge=1, le=100)

    # Ribbon settings
    ribbon_tile_size: int = Field(default=40, gt=0)
    ribbon_tiles_per_row: int = Field(default=9, ge=1)
    ribbon_thumbs_dir: str = Field(default="thumbs/")
    ribbon_object_name: str = Field(default="ribbon.jpg")
    ribbon_fetch_concurrency: int = Field(
        default=8,
        ge=1,
        description="Maximum number of tile downloads in flight for one ribbon build.",
    )

    # Invocation settings
    invocation_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description=(
            "Wall-clock budget for one invocation. On expiry the invocation is "
            "abandoned; storage side effects already performed are kept."
        ),
    )
    removal_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Compare-and-swap attempts for positional index removals.",
    )

    # Queue consumer (worker mode)
    queue_url: str | None = Field(default=None)
    polling_interval: float = Field(default=1.0, gt=0)
    max_inflight: int = Field(default=10, ge=1)

    # Observability / trace logging
    trace_enabled: bool = Field(
        default=True,
        description="Emit structured JSON trace events for invocations and stages.",
    )
    trace_max_chars: int = Field(
        default=2000,
        description="Maximum characters to log for any single trace field.",
    )

    # Error log file
    error_log_file_enabled: bool = Field(default=True)
    error_log_file_path: str = Field(default="./logs/errors.log")
    error_log_level: str = Field(default="WARNING")
    error_log_max_bytes: int = Field(default=10_485_760)
    error_log_backup_count: int = Field(default=5)

    @model_validator(mode="after")
    def _normalize_ribbon_paths(self) -> "PipelineConfig":
        thumbs_dir = self.ribbon_thumbs_dir.strip("/")
        self.ribbon_thumbs_dir = f"{thumbs_dir}/" if thumbs_dir else ""
        return self

    @property
    def derivative_buckets(self) -> list[str]:
        """Buckets that receive generated derivatives."""
        return [target.bucket for target in self.size_targets()]

    def size_targets(self) -> list[SizeTarget]:
        """Declared derivative targets, in generation order."""
        return [
            SizeTarget(
                name=SizeTargetName.THUMB,
                bucket=self.thumbs_bucket,
                max_width=self.thumb_max_dimension,
                max_height=self.thumb_max_dimension,
                quality=self.jpeg_quality,
            ),
            SizeTarget(
                name=SizeTargetName.IMAGE,
                bucket=self.images_bucket,
                max_width=self.image_max_dimension,
                max_height=self.image_max_dimension,
                quality=self.jpeg_quality,
            ),
            SizeTarget(
                name=SizeTargetName.LARGE,
                bucket=self.large_images_bucket,
                max_width=self.large_image_max_dimension,
                max_height=self.large_image_max_dimension,
                quality=self.jpeg_quality,
            ),
        ]

    @classmethod
    def from_json_file(
        cls,
        config_path: str = "config.json",
        overrides_path: str = "overrides.yml",
    ) -> "PipelineConfig":
        """Load config from JSON + overrides.yml with env var overrides.

        Args:
            config_path: Path to JSON config file.
            overrides_path: Path to YAML overrides file. Relative paths are
                resolved against the repository root.

        Returns:
            Configured PipelineConfig instance.
        """
        config_data: dict[str, Any] = {}

        json_path = Path(config_path)
        if json_path.exists():
            with open(json_path) as f:
                config_data = json.load(f)

        yml_path = Path(overrides_path).expanduser()
        if not yml_path.is_absolute():
            yml_path = _find_repo_root(start=Path(__file__)) / yml_path
        config_data.update(_load_yaml_overrides(yml_path))

        # Env vars must win over file values, so drop keys they cover.
        for key in list(config_data):
            if f"{ENV_PREFIX}{key.upper()}" in os.environ:
                del config_data[key]

        return cls(**config_data)
