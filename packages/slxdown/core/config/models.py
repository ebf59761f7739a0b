"""Configuration models for slxdown."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

CONTAINER_EXTENSIONS: tuple[str, ...] = (".slx", ".sldd", ".mldatx")

# Optional metadata documents, relative to the archive root.
METADATA_DOCUMENTS: tuple[str, ...] = (
    "metadata/mwcoreProperties.xml",
    "metadata/mwcorePropertiesReleaseInfo.xml",
    "metadata/coreProperties.xml",
)

VERSION_FIELDS: frozenset[str] = frozenset({"version", "release", "matlabRelease"})

DEFAULT_RELEASE_MAP: dict[str, str] = {
    "r2022a": "R2022a",
    "r2022b": "R2022b",
    "r2023a": "R2023a",
    "r2023b": "R2023b",
    "r2024a": "R2024a",
    "r2024b": "R2024b",
}

# Option names the CLI defines itself; release flags may not reuse them.
RESERVED_FLAGS: frozenset[str] = frozenset(
    {"config", "directory", "help", "json-logs", "log-level", "release"}
)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")

    level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Root log level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Format string for text logs",
    )
    structured: bool = Field(default=False, description="Emit JSON lines instead of text")
    filename: str | None = Field(default=None, description="Log file path (stderr if unset)")

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v


class ConversionConfig(BaseModel):
    """Release table and container recognition settings."""

    model_config = ConfigDict(extra="forbid")

    release_map: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_RELEASE_MAP),
        description="CLI release flag name -> version token written into metadata",
    )
    container_extensions: tuple[str, ...] = Field(
        default=CONTAINER_EXTENSIONS,
        min_length=1,
        description="File extensions treated as containers in directory mode",
    )
    metadata_documents: tuple[str, ...] = Field(
        default=METADATA_DOCUMENTS,
        min_length=1,
        description="Metadata document paths, relative to the archive root",
    )
    version_fields: frozenset[str] = Field(
        default=VERSION_FIELDS,
        min_length=1,
        description="Element local names that carry the release",
    )

    @field_validator("release_map")
    @classmethod
    def _validate_release_map(cls, v: dict[str, str]) -> dict[str, str]:
        normalized: dict[str, str] = {}
        for flag, token in v.items():
            flag = flag.strip().lower().lstrip("-")
            token = token.strip()
            if not flag or not token:
                raise ValueError("release_map flags and tokens must be non-empty")
            if flag in RESERVED_FLAGS:
                raise ValueError(f"release_map flag --{flag} clashes with a built-in option")
            normalized[flag] = token
        return normalized

    @field_validator("metadata_documents", mode="before")
    @classmethod
    def _normalize_documents(cls, v: object) -> object:
        if isinstance(v, (list, tuple)):
            return tuple(
                doc.replace("\\", "/").strip("/") for doc in (str(d).strip() for d in v) if doc
            )
        return v

    @field_validator("container_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, v: object) -> object:
        if isinstance(v, str):
            v = [v]
        if isinstance(v, (list, tuple)):
            return tuple(
                ext.lower() if ext.startswith(".") else f".{ext.lower()}"
                for ext in (str(e).strip() for e in v)
                if ext
            )
        return v


class AppConfig(BaseModel):
    """Application configuration."""

    model_config = ConfigDict(extra="forbid")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    conversion: ConversionConfig = Field(default_factory=ConversionConfig)
