"""Run configuration.

Options are plain pydantic models so they can be built from keyword
arguments in code or from a camelCase YAML/JSON config file.
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

NamingStyle = Literal["PascalCase", "camelCase", "snake_case", "kebab-case"]
LogLevel = Literal["silent", "error", "warn", "info", "debug"]

DEFAULT_GENERIC_WRAPPERS = [
    "ApiSuccessResponse",
    "ApiResponse",
    "PageResult",
    "PaginatedResponse",
    "Result",
]


class _Options(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class PathClassificationOptions(_Options):
    output_prefix: str = "api"
    common_prefix: str = ""
    max_depth: int = Field(default=2, ge=1)


class OutputOptions(_Options):
    """Which sections of the result are populated."""

    schemas: bool = True
    declarations: bool = True
    apis: bool = True


class CodeGenerationOptions(_Options):
    parameter_naming_style: NamingStyle = "PascalCase"
    declaration_export_mode: Literal["export", "declare"] = "export"
    output: OutputOptions = Field(default_factory=OutputOptions)


class ParseOptions(_Options):
    """Everything one ``parse`` call can be configured with."""

    path_classification: PathClassificationOptions = Field(default_factory=PathClassificationOptions)
    code_generation: CodeGenerationOptions = Field(default_factory=CodeGenerationOptions)
    generic_wrappers: list[str] = Field(default_factory=lambda: list(DEFAULT_GENERIC_WRAPPERS))
    log_level: LogLevel = "error"
    log_sample_limit: int = Field(default=10, ge=0)
    validation: bool | None = None  # None means the adapter's default


def load_options(path: Path) -> ParseOptions:
    """Load options from a YAML or JSON file."""
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return ParseOptions.model_validate(data)
