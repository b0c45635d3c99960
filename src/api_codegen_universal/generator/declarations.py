"""Render normalized schemas as TypeScript declarations."""

import json
import re

from api_codegen_universal.generator.naming import convert
from api_codegen_universal.parser.base import PropertyDefinition, SchemaDefinition
from api_codegen_universal.parser.typetree import render_key

BUILTIN_TYPES = frozenset({
    "string", "number", "boolean", "null", "undefined", "unknown", "any", "void",
    "never", "object", "true", "false", "Record", "Array", "Blob", "Date",
})

# A string literal, or an identifier optionally followed by a property colon.
_TOKEN = re.compile(r'("(?:[^"\\]|\\.)*")|([A-Za-z_$][A-Za-z0-9_$]*)(\s*\??\s*:)?')
_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

# kebab-case names are not TypeScript identifiers.
IDENTIFIER_STYLES = {"kebab-case": "snake_case"}


def _doc_block(lines: list[str], indent: str = "") -> list[str]:
    if not lines:
        return []
    out = [f"{indent}/**"]
    for line in lines:
        for part in line.splitlines() or [""]:
            out.append(f"{indent} * {part}".rstrip())
    out.append(f"{indent} */")
    return out


def _enum_member(value) -> str:
    if isinstance(value, str):
        key = value if _IDENTIFIER.match(value) else json.dumps(value, ensure_ascii=False)
        return f"{key} = {json.dumps(value, ensure_ascii=False)}"
    return f"Value{str(value).replace('-', 'Minus').replace('.', '_')} = {value}"


class DeclarationEmitter:
    """Turns one SchemaDefinition into declaration text."""

    def __init__(self, naming_style: str = "PascalCase", export_mode: str = "export",
                 schemas: dict[str, SchemaDefinition] | None = None):
        self.naming_style = IDENTIFIER_STYLES.get(naming_style, naming_style)
        self.keyword = "declare" if export_mode == "declare" else "export"
        self.schemas = schemas or {}
        self.names: dict[str, str] = {}

    def type_name(self, name: str) -> str:
        if name in self.names:
            return self.names[name]
        return convert(name, self.naming_style)

    def assign_names(self, schemas: dict[str, SchemaDefinition]) -> dict[str, str]:
        """Give every schema a distinct declared name.

        A schema whose name is already in the target style keeps it. Any
        other schema whose converted name is taken gets a number suffix,
        in schema order: ``UserDto`` stays, ``user_dto`` becomes ``UserDto2``.
        """
        names = {name: name for name in schemas if convert(name, self.naming_style) == name}
        taken = set(names)
        for name in schemas:
            if name in names:
                continue
            base = candidate = convert(name, self.naming_style)
            suffix = 2
            while candidate in taken:
                candidate = f"{base}{suffix}"
                suffix += 1
            names[name] = candidate
            taken.add(candidate)
        return names

    def rename_types(self, text: str, keep: frozenset = frozenset()) -> str:
        """Apply the naming style to every type identifier in ``text``."""

        def replace(match: re.Match) -> str:
            literal, identifier, colon = match.groups()
            if literal is not None or colon is not None:
                return match.group(0)
            if identifier in BUILTIN_TYPES or identifier in keep:
                return match.group(0)
            return self.type_name(identifier)

        return _TOKEN.sub(replace, text)

    def emit_all(self, schemas: dict[str, SchemaDefinition]) -> dict[str, str]:
        self.schemas = schemas
        self.names = self.assign_names(schemas)
        return {name: self.emit(schema) for name, schema in schemas.items()}

    def emit(self, schema: SchemaDefinition) -> str:
        header = _doc_block(self._schema_doc(schema))
        if self._is_alias_instance(schema):
            body = self._instance(schema)
        elif schema.kind == "enum":
            body = self._enum(schema)
        elif schema.kind in ("object", "generic") and schema.type_text is None:
            body = self._interface(schema)
        else:
            body = self._alias(schema, schema.type_text or "unknown")
        return "\n".join(header + [body])

    def _is_alias_instance(self, schema: SchemaDefinition) -> bool:
        base = self.schemas.get(schema.base_type) if schema.base_type else None
        return schema.is_instance and base is not None and base.is_generic

    def _schema_doc(self, schema: SchemaDefinition) -> list[str]:
        lines = []
        if schema.description:
            lines.append(schema.description)
        if schema.deprecated:
            lines.append("@deprecated")
        return lines

    def _instance(self, schema: SchemaDefinition) -> str:
        arg = self.rename_types(schema.generic_param)
        base = self.type_name(schema.base_type)
        return f"{self.keyword} type {self.type_name(schema.name)} = {base}<{arg}>;"

    def _alias(self, schema: SchemaDefinition, type_text: str) -> str:
        return f"{self.keyword} type {self.type_name(schema.name)} = {self.rename_types(type_text)};"

    def _enum(self, schema: SchemaDefinition) -> str:
        values = schema.enum_values or []
        if not values or not all(isinstance(v, (str, int, float)) and not isinstance(v, bool) for v in values):
            return self._alias(schema, schema.type_text or "unknown")
        lines = [f"{self.keyword} enum {self.type_name(schema.name)} {{"]
        lines += [f"  {_enum_member(v)}," for v in values]
        lines.append("}")
        return "\n".join(lines)

    def _interface(self, schema: SchemaDefinition) -> str:
        name = self.type_name(schema.name)
        if schema.is_generic:
            name += f"<{schema.generic_param or 'T'} = any>"
        if schema.extends:
            name += " extends " + ", ".join(self.rename_types(e) for e in schema.extends)
        if not schema.properties:
            return f"{self.keyword} interface {name} {{}}"

        lines = [f"{self.keyword} interface {name} {{"]
        for prop in schema.properties.values():
            lines += _doc_block(self._property_doc(prop), indent="  ")
            lines.append(f"  {self._property_line(schema, prop)}")
        lines.append("}")
        return "\n".join(lines)

    def _property_line(self, schema: SchemaDefinition, prop: PropertyDefinition) -> str:
        parameter = prop.is_type_parameter and schema.is_generic
        keep = frozenset({schema.generic_param or "T"}) if parameter else frozenset()
        type_text = self.rename_types(prop.type, keep)
        if parameter and not re.search(r"(?<![\w$])T(?![\w$])", type_text):
            type_text = schema.generic_param or "T"
        if prop.nullable and type_text not in ("unknown", "any"):
            type_text += " | null"
        optional = "" if prop.required else "?"
        return f"{render_key(prop.name)}{optional}: {type_text};"

    @staticmethod
    def _property_doc(prop: PropertyDefinition) -> list[str]:
        lines = []
        if prop.description:
            lines.append(prop.description)
        if prop.format:
            lines.append(f"@format {prop.format}")
        if prop.example is not None:
            lines.append("@example " + json.dumps(prop.example, ensure_ascii=False))
        if prop.default is not None:
            lines.append("@default " + json.dumps(prop.default, ensure_ascii=False))
        if prop.deprecated:
            lines.append("@deprecated")
        return lines
