"""Convert a repaired OpenAPI document into a tree of declared types.

The tree is what the rest of the pipeline reads: named component types,
and operations whose parameters and payloads are type nodes. Nodes render
to TypeScript type text with :func:`render_type`.
"""

import json
import logging
import re
from dataclasses import dataclass, field

from api_codegen_universal.parser.refs import SCHEMA_PREFIX, RefResolver, is_reference, ref_name
from api_codegen_universal.parser.repair import iter_operations

logger = logging.getLogger(__name__)

IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
SCALARS = ("string", "number", "boolean", "null", "unknown", "any", "void", "never", "Blob")


@dataclass(frozen=True)
class KeywordType:
    name: str


@dataclass(frozen=True)
class LiteralType:
    value: str | int | float | bool


@dataclass(frozen=True)
class RefType:
    name: str


@dataclass(frozen=True)
class ArrayType:
    item: object


@dataclass(frozen=True)
class UnionType:
    members: tuple


@dataclass(frozen=True)
class IntersectionType:
    members: tuple


@dataclass(frozen=True)
class RecordType:
    value: object


@dataclass(frozen=True)
class Member:
    name: str
    type: object
    optional: bool = True
    comment: str | None = None


@dataclass(frozen=True)
class ObjectType:
    members: tuple


UNKNOWN = KeywordType("unknown")
NULL = KeywordType("null")


@dataclass
class DeclaredType:
    name: str
    node: object
    comment: str | None = None


@dataclass
class DeclaredParameter:
    name: str
    location: str
    required: bool
    node: object
    comment: str | None = None


@dataclass
class DeclaredBody:
    description: str | None
    required: bool
    content: dict = field(default_factory=dict)  # media type -> node


@dataclass
class DeclaredResponse:
    description: str | None
    content: dict = field(default_factory=dict)


@dataclass
class DeclaredOperation:
    path: str
    method: str
    operation_id: str | None
    summary: str | None = None
    description: str | None = None
    tags: list = field(default_factory=list)
    deprecated: bool = False
    parameters: list = field(default_factory=list)
    request_body: DeclaredBody | None = None
    responses: dict = field(default_factory=dict)  # status -> DeclaredResponse


@dataclass
class DeclaredDocument:
    types: dict = field(default_factory=dict)  # name -> DeclaredType
    operations: list = field(default_factory=list)


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------


def make_union(members) -> object:
    """Flattened, de-duplicated union; a single member is returned as is."""
    flat = []
    for member in members:
        parts = member.members if isinstance(member, UnionType) else (member,)
        for part in parts:
            if part not in flat:
                flat.append(part)
    if not flat:
        return KeywordType("never")
    if len(flat) == 1:
        return flat[0]
    return UnionType(tuple(flat))


def strip_null(node) -> tuple[object, bool]:
    """Remove ``null`` from a union. Returns ``(node, was_nullable)``."""
    if node == NULL:
        return UNKNOWN, True
    if isinstance(node, UnionType) and NULL in node.members:
        return make_union(m for m in node.members if m != NULL), True
    return node, False


def is_scalar(node) -> bool:
    return isinstance(node, KeywordType) and node.name in SCALARS


def render_key(name: str) -> str:
    return name if IDENTIFIER.match(name) else json.dumps(name, ensure_ascii=False)


def render_type(node) -> str:
    """Render a node as a single-line TypeScript type expression."""
    if isinstance(node, KeywordType):
        return node.name
    if isinstance(node, RefType):
        return node.name
    if isinstance(node, LiteralType):
        return json.dumps(node.value, ensure_ascii=False)
    if isinstance(node, ArrayType):
        inner = render_type(node.item)
        if isinstance(node.item, (UnionType, IntersectionType)):
            inner = f"({inner})"
        return f"{inner}[]"
    if isinstance(node, UnionType):
        return " | ".join(_wrap(m, IntersectionType) for m in node.members)
    if isinstance(node, IntersectionType):
        return " & ".join(_wrap(m, UnionType) for m in node.members)
    if isinstance(node, RecordType):
        return f"Record<string, {render_type(node.value)}>"
    if isinstance(node, ObjectType):
        if not node.members:
            return "{}"
        fields = "; ".join(
            f"{render_key(m.name)}{'?' if m.optional else ''}: {render_type(m.type)}"
            for m in node.members
        )
        return "{ " + fields + " }"
    raise TypeError(f"Unknown type node: {node!r}")


def _wrap(node, needs_parens: type) -> str:
    text = render_type(node)
    return f"({text})" if isinstance(node, needs_parens) else text


# ---------------------------------------------------------------------------
# Converter
# ---------------------------------------------------------------------------


def build_comment(schema) -> str | None:
    """Documentation block for a schema node, using the tag grammar
    understood by :func:`api_codegen_universal.parser.schema.parse_comment`.
    """
    if not isinstance(schema, dict):
        return None
    lines = []
    if schema.get("title"):
        lines.append(str(schema["title"]))
    if schema.get("description"):
        lines.append(f"@description {schema['description']}")
    if "example" in schema:
        lines.append("@example " + json.dumps(schema["example"], indent=2, ensure_ascii=False))
    elif isinstance(schema.get("examples"), list) and schema["examples"]:
        lines.append("@example " + json.dumps(schema["examples"][0], indent=2, ensure_ascii=False))
    if schema.get("format"):
        lines.append(f"Format: {schema['format']}")
    if "default" in schema:
        lines.append("@default " + json.dumps(schema["default"], ensure_ascii=False))
    if schema.get("deprecated"):
        lines.append("@deprecated")
    for key in ("minLength", "maxLength", "minimum", "maximum", "pattern"):
        if key in schema:
            lines.append(f"@{key} {schema[key]}")
    return "\n".join(lines) or None


class TypeTreeConverter:
    """Builds a :class:`DeclaredDocument` from a repaired document."""

    def __init__(self, document: dict, resolver: RefResolver | None = None):
        self.document = document
        self.resolver = resolver or RefResolver(document)

    def convert(self) -> DeclaredDocument:
        result = DeclaredDocument()
        schemas = self.document.get("components", {}).get("schemas") or {}
        for name, schema in schemas.items():
            result.types[name] = DeclaredType(name, self.to_node(schema), build_comment(schema))
        for path, method, operation in iter_operations(self.document):
            result.operations.append(self._operation(path, method, operation))
        logger.debug("Converted %d types and %d operations", len(result.types), len(result.operations))
        return result

    def to_node(self, schema, stack: tuple = ()):
        if not isinstance(schema, dict):
            return UNKNOWN
        if is_reference(schema):
            node = self._ref_node(schema["$ref"], stack)
        else:
            node = self._shape_node(schema, stack)
        if schema.get("nullable") is True:
            node = make_union([node, NULL])
        return node

    def _ref_node(self, pointer: str, stack: tuple):
        rest = pointer[len(SCHEMA_PREFIX):] if pointer.startswith(SCHEMA_PREFIX) else None
        if rest is not None and "/" not in rest:
            return RefType(ref_name(pointer))
        if pointer in stack:
            return UNKNOWN
        return self.to_node(self.resolver.resolve(pointer), stack + (pointer,))

    def _shape_node(self, schema: dict, stack: tuple):
        if isinstance(schema.get("enum"), list):
            literals = [LiteralType(v) for v in schema["enum"] if isinstance(v, (str, int, float, bool))]
            if None in schema["enum"]:
                literals.append(NULL)
            return make_union(literals)

        if isinstance(schema.get("allOf"), list):
            members = [self.to_node(part, stack) for part in schema["allOf"]]
            if schema.get("properties"):
                members.append(self._object_node(schema, stack))
            return members[0] if len(members) == 1 else IntersectionType(tuple(members))

        for key in ("oneOf", "anyOf"):
            if isinstance(schema.get(key), list):
                return make_union(self.to_node(part, stack) for part in schema[key])

        declared = schema.get("type")
        if isinstance(declared, list):
            return make_union(self._shape_node({**schema, "type": t}, stack) for t in declared)
        if declared == "object" or (declared is None and ("properties" in schema or "additionalProperties" in schema)):
            return self._object_node(schema, stack)
        if declared == "array":
            return ArrayType(self.to_node(schema.get("items"), stack))
        if declared == "string":
            return KeywordType("Blob") if schema.get("format") == "binary" else KeywordType("string")
        if declared in ("integer", "number"):
            return KeywordType("number")
        if declared == "boolean":
            return KeywordType("boolean")
        if declared == "null":
            return NULL
        return UNKNOWN

    def _object_node(self, schema: dict, stack: tuple):
        properties = schema.get("properties") or {}
        required = set(schema.get("required") or [])
        if properties:
            return ObjectType(tuple(
                Member(name, self.to_node(prop, stack), name not in required, build_comment(prop))
                for name, prop in properties.items()
            ))
        extra = schema.get("additionalProperties")
        if isinstance(extra, dict):
            return RecordType(self.to_node(extra, stack))
        return RecordType(UNKNOWN)

    def _operation(self, path: str, method: str, operation: dict) -> DeclaredOperation:
        path_item = self.document["paths"][path]
        merged = {}
        for raw in list(path_item.get("parameters") or []) + list(operation.get("parameters") or []):
            param = self.resolver.deref(raw)
            if isinstance(param, dict) and param.get("name") and param.get("in"):
                merged[(param["in"], param["name"])] = param

        parameters = []
        for (location, name), param in merged.items():
            schema = param.get("schema")
            if schema is None and isinstance(param.get("content"), dict):
                schema = next(iter(param["content"].values()), {}).get("schema")
            comment_source = dict(schema) if isinstance(schema, dict) and not is_reference(schema) else {}
            if param.get("description"):
                comment_source["description"] = param["description"]
            if "example" in param:
                comment_source["example"] = param["example"]
            parameters.append(DeclaredParameter(
                name=name,
                location=location,
                required=location == "path" or bool(param.get("required")),
                node=self.to_node(schema),
                comment=build_comment(comment_source),
            ))

        return DeclaredOperation(
            path=path,
            method=method,
            operation_id=operation.get("operationId") or None,
            summary=operation.get("summary"),
            description=operation.get("description"),
            tags=list(operation.get("tags") or []),
            deprecated=bool(operation.get("deprecated")),
            parameters=parameters,
            request_body=self._request_body(operation.get("requestBody")),
            responses=self._responses(operation.get("responses") or {}),
        )

    def _request_body(self, body) -> DeclaredBody | None:
        body = self.resolver.deref(body) if body is not None else None
        if not isinstance(body, dict):
            return None
        return DeclaredBody(
            description=body.get("description"),
            required=bool(body.get("required")),
            content=self._content(body.get("content")),
        )

    def _responses(self, responses: dict) -> dict:
        result = {}
        for status, response in responses.items():
            response = self.resolver.deref(response)
            if not isinstance(response, dict):
                continue
            result[str(status)] = DeclaredResponse(
                description=response.get("description"),
                content=self._content(response.get("content")),
            )
        return result

    def _content(self, content) -> dict:
        if not isinstance(content, dict):
            return {}
        return {
            media: self.to_node(entry.get("schema")) if isinstance(entry, dict) else UNKNOWN
            for media, entry in content.items()
        }
