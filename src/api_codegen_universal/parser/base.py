"""Unified data models for normalized API descriptions.

Every adapter (OpenAPI, Apifox) converts its input into these models.
Attributes are snake_case in Python and dumped as camelCase.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

SchemaKind = Literal["object", "array", "enum", "primitive", "generic"]
ParamLocation = Literal["query", "path", "header", "cookie"]

PARAM_LOCATIONS = ("query", "path", "header", "cookie")


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PropertyDefinition(_Model):
    """A single member of an object-shaped schema."""

    name: str
    type: str  # rendered type expression, without "| null"
    required: bool = False
    nullable: bool = False
    description: str | None = None
    format: str | None = None
    enum_values: list | None = None
    example: Any = None
    default: Any = None
    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    minimum: float | None = None
    maximum: float | None = None
    deprecated: bool = False
    is_type_parameter: bool = False  # the substitution point of a generic base


class SchemaDefinition(_Model):
    """One named, normalized schema."""

    name: str
    kind: SchemaKind
    description: str | None = None
    properties: dict[str, PropertyDefinition] = {}
    required: list[str] = []
    items: "SchemaReference | None" = None
    enum_values: list | None = None
    is_generic: bool = False
    base_type: str | None = None
    generic_param: str | None = None
    extends: list[str] = []
    type_text: str | None = None  # declared type for alias-shaped schemas
    example: Any = None
    deprecated: bool = False

    @property
    def is_instance(self) -> bool:
        """True for a concrete instantiation of a generic base."""
        return not self.is_generic and self.base_type is not None


class SchemaReference(_Model):
    """Either a reference to a named schema or an inline definition."""

    kind: Literal["ref", "inline"]
    ref: str | None = None
    type_args: list[str] | None = None
    inline: SchemaDefinition | None = None

    @classmethod
    def to(cls, name: str, type_args: list[str] | None = None) -> "SchemaReference":
        return cls(kind="ref", ref=name, type_args=type_args)

    @classmethod
    def of(cls, schema: SchemaDefinition) -> "SchemaReference":
        return cls(kind="inline", inline=schema)


class GenericInfo(_Model):
    base_type: str
    generics: list[str]


class CategoryInfo(_Model):
    segments: list[str]
    depth: int
    is_unclassified: bool
    file_path: str


class ParametersDefinition(_Model):
    query: SchemaReference | None = None
    path: SchemaReference | None = None
    header: SchemaReference | None = None
    cookie: SchemaReference | None = None


class RequestBodyDefinition(_Model):
    description: str | None = None
    required: bool = False
    content: dict[str, SchemaReference] = {}


class ResponseDefinition(_Model):
    description: str | None = None
    content: dict[str, SchemaReference] = {}


class ApiDefinition(_Model):
    """A single operation with everything needed to generate a client for it."""

    path: str
    method: str  # GET / POST / PUT / DELETE / PATCH ...
    operation_id: str
    summary: str | None = None
    description: str | None = None
    tags: list[str] = []
    deprecated: bool = False
    parameters: ParametersDefinition = ParametersDefinition()
    request_body: RequestBodyDefinition | None = None
    responses: dict[str, ResponseDefinition] = {}
    category: CategoryInfo


class Metadata(_Model):
    title: str | None = None
    description: str | None = None
    version: str | None = None
    base_url: str | None = None
    common_prefix: str | None = None
    generated_at: str
    source: str | None = None
    options: dict | None = None
    warnings: dict | None = None


class StandardOutput(_Model):
    schemas: dict[str, SchemaDefinition] = {}
    declarations: dict[str, str] = {}
    apis: list[ApiDefinition] = []
    metadata: Metadata

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


SchemaDefinition.model_rebuild()
