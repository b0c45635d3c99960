"""Declared type nodes -> normalized SchemaDefinition."""

import json
import re

from api_codegen_universal.parser.base import PropertyDefinition, SchemaDefinition, SchemaReference
from api_codegen_universal.parser.typetree import (
    NULL,
    ArrayType,
    IntersectionType,
    LiteralType,
    Member,
    ObjectType,
    RefType,
    UnionType,
    is_scalar,
    render_type,
    strip_null,
)

TAG = re.compile(r"^@(\w+)\s*(.*)$")
FORMAT = re.compile(r"^Format:\s*(.+)$")

_NUMBER_TAGS = {
    "minLength": "min_length",
    "maxLength": "max_length",
    "minimum": "minimum",
    "maximum": "maximum",
}


def _json_or_raw(value: str):
    try:
        return json.loads(value)
    except ValueError:
        return value


def _number(value: str):
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return None


def parse_comment(text: str | None) -> dict:
    """Parse a documentation block into PropertyDefinition field values.

    Recognized lines::

        Plain first line          fallback description
        @description Text         description, continues on untagged lines
        @example {...}            JSON, possibly spanning lines; raw text if invalid
        Format: date-time         format
        @default / @deprecated / @pattern / @minLength / @maxLength / @minimum / @maximum
    """
    result: dict = {}
    if not text:
        return result

    fallback = None
    tag, buffer = None, []

    def close():
        if tag is None:
            return
        value = "\n".join(buffer).strip()
        if tag == "description" and value:
            result["description"] = value
        elif tag == "example" and value:
            result["example"] = _json_or_raw(value)
        elif tag == "default" and value:
            result["default"] = _json_or_raw(value)
        elif tag == "deprecated":
            result["deprecated"] = True
        elif tag == "pattern" and value:
            result["pattern"] = value
        elif tag in _NUMBER_TAGS:
            number = _number(value)
            if number is not None:
                result[_NUMBER_TAGS[tag]] = number

    for raw in text.splitlines():
        line = raw.strip()
        tag_match = TAG.match(line)
        format_match = FORMAT.match(line)
        if tag_match:
            close()
            tag, buffer = tag_match.group(1), [tag_match.group(2)]
        elif format_match:
            close()
            tag, buffer = None, []
            result["format"] = format_match.group(1).strip()
        elif tag is not None:
            buffer.append(line)
        elif line and fallback is None:
            fallback = line
    close()

    if "description" not in result and fallback:
        result["description"] = fallback
    return result


def literal_values(node) -> list | None:
    """Values of a literal or union of literals (``null`` ignored), else None."""
    node, _ = strip_null(node)
    members = node.members if isinstance(node, UnionType) else (node,)
    if not all(isinstance(m, LiteralType) for m in members):
        return None
    return [m.value for m in members]


def merge_schemas(first: SchemaDefinition, second: SchemaDefinition) -> SchemaDefinition:
    """Merge two object schemas. Properties of ``second`` win on collision."""
    properties = dict(first.properties)
    properties.update(second.properties)
    required = list(first.required) + [r for r in second.required if r not in first.required]
    extends = list(first.extends) + [e for e in second.extends if e not in first.extends]
    return SchemaDefinition(
        name=first.name,
        kind="object",
        description=second.description or first.description,
        properties=properties,
        required=required,
        extends=extends,
    )


class SchemaExtractor:
    """Produces one SchemaDefinition per declared type node."""

    def extract(self, node, name: str, comment: str | None = None) -> SchemaDefinition:
        doc = parse_comment(comment)
        schema = self._shape(node, name)
        if doc.get("description"):
            schema.description = doc["description"]
        if "example" in doc:
            schema.example = doc["example"]
        if doc.get("deprecated"):
            schema.deprecated = True
        return schema

    def property_from(self, member: Member) -> PropertyDefinition:
        type_node, nullable = strip_null(member.type)
        fields = parse_comment(member.comment)
        return PropertyDefinition(
            name=member.name,
            type=render_type(type_node),
            required=not member.optional,
            nullable=nullable,
            enum_values=literal_values(type_node),
            **fields,
        )

    def reference_for(self, node, name: str) -> SchemaReference:
        if isinstance(node, RefType):
            return SchemaReference.to(node.name)
        return SchemaReference.of(self.extract(node, name))

    def _shape(self, node, name: str) -> SchemaDefinition:
        if isinstance(node, ObjectType):
            return self._object(node, name)

        values = literal_values(node)
        if values is not None and node != NULL:
            return SchemaDefinition(name=name, kind="enum", enum_values=values, type_text=render_type(node))

        if isinstance(node, IntersectionType) and all(
            isinstance(m, (RefType, ObjectType, IntersectionType)) for m in node.members
        ):
            merged = SchemaDefinition(name=name, kind="object")
            for member in node.members:
                if isinstance(member, RefType):
                    if member.name not in merged.extends:
                        merged.extends.append(member.name)
                else:
                    merged = merge_schemas(merged, self._shape(member, name))
            return merged

        text = render_type(node)
        if isinstance(node, ArrayType):
            return SchemaDefinition(
                name=name,
                kind="array",
                items=self.reference_for(node.item, f"{name}Item"),
                type_text=text,
            )
        if is_scalar(strip_null(node)[0]):
            return SchemaDefinition(name=name, kind="primitive", type_text=text)
        extends = [node.name] if isinstance(node, RefType) else []
        return SchemaDefinition(name=name, kind="object", extends=extends, type_text=text)

    def _object(self, node: ObjectType, name: str) -> SchemaDefinition:
        properties = {}
        required = []
        for member in node.members:
            properties[member.name] = self.property_from(member)
            if not member.optional:
                required.append(member.name)
        return SchemaDefinition(name=name, kind="object", properties=properties, required=required)
