"""Configuration models."""

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RepositoryConfig(BaseModel):
    """Configuration for a Git repository to mine."""

    repo_path: Path = Field(..., description="Path to the Git repository")
    project_name: Optional[str] = Field(None, description="Project name (defaults to directory name)")
    project_uri: Optional[str] = Field(None, description="Project URI (defaults to origin remote)")
    source_extension: str = Field(".java", description="Extension of source files the detector understands")
    test_path_markers: List[str] = Field(
        default_factory=lambda: ["/test/", "/tests/"],
        description="Path fragments marking test code, skipped when mining modified files",
    )
    max_file_size_bytes: int = Field(
        default=1_000_000,  # 1MB
        description="Maximum file size to parse",
    )

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "repo_path": "/path/to/repo",
                "project_name": "commons-lang",
                "project_uri": "https://github.com/apache/commons-lang.git",
                "source_extension": ".java",
                "test_path_markers": ["/test/", "/tests/"],
                "max_file_size_bytes": 1000000,
            }
        }


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SATDMINER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Processing Settings
    max_workers: int = 4
    detector: str = "keyword"

    # Output (used when --output is not given)
    output_dir: Optional[Path] = None

    # Logging
    log_level: str = "INFO"
