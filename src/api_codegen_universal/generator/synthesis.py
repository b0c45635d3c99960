"""Build generic base schemas once every concrete instance is known."""

import logging
import re

from api_codegen_universal import diagnostics
from api_codegen_universal.context import GenericUsage, RunContext
from api_codegen_universal.parser.base import PropertyDefinition, SchemaDefinition

logger = logging.getLogger(__name__)

TYPE_PARAM = "T"
SCALAR_NAMES = {"string", "number", "boolean", "null", "unknown", "any", "void", "never", "Blob"}


def _token(text: str) -> re.Pattern:
    # An array argument must not match the head of a deeper array (User[] in User[][]).
    tail = r"(?![\w$\[])" if text.endswith("]") else r"(?![\w$])"
    return re.compile(r"(?<![\w$])" + re.escape(text) + tail)


def split_union(text: str) -> list[str]:
    """Top-level members of a union type expression."""
    members, depth, current = [], 0, []
    for char in text:
        if char in "({<[":
            depth += 1
        elif char in ")}>]":
            depth -= 1
        elif char == "|" and depth == 0:
            members.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    members.append("".join(current).strip())
    return [m for m in members if m]


def matches_argument(type_text: str, arg: str) -> bool:
    """Exact match, array-of match, or a union member."""
    if type_text in (arg, f"{arg}[]"):
        return True
    return arg in split_union(type_text)


def substitute(type_text: str, arg: str, replacement: str = TYPE_PARAM) -> str:
    """Replace whole occurrences of ``arg`` only, never part of a longer name."""
    return _token(arg).sub(lambda _: replacement, type_text)


def payload_fields(schema: SchemaDefinition, arg: str) -> list[str]:
    return [name for name, prop in schema.properties.items() if matches_argument(prop.type, arg)]


def _is_scalar_argument(arg: str) -> bool:
    return arg.replace("[]", "") in SCALAR_NAMES


class GenericSynthesizer:
    """Groups instances by base type and makes each base generic.

    With an explicit base schema the base is marked generic in place.
    Without one, an instance is copied as a template: the first whose
    argument is a named schema, or else the first scalar instance with
    exactly one property of that type.
    A group whose payload field cannot be located is left alone.
    """

    def __init__(self, ctx: RunContext):
        self.ctx = ctx

    def run(self) -> None:
        for base_type, usages in self.ctx.usages.items():
            field = self._synthesize(base_type, usages)
            if field is None:
                self._release(usages)
                self.ctx.collector.record(diagnostics.UNMATCHED_GENERICS, {
                    "baseType": base_type,
                    "instances": [u.instance for u in usages if u.instance],
                    "reason": "payload field not found",
                })
                continue
            self._bind_instances(base_type, field, usages)
            logger.debug("Synthesized generic %s<%s> on field %s", base_type, TYPE_PARAM, field)

    def _synthesize(self, base_type: str, usages: list[GenericUsage]) -> str | None:
        base = self.ctx.schemas.get(base_type)
        if base is not None and base.base_type is None:
            return self._mark_explicit(base, usages)
        if base is not None:
            return None

        first, field = self._template(usages)
        if first is None:
            return None
        template = self.ctx.schemas[first.instance]

        synthesized = template.model_copy(deep=True)
        synthesized.name = base_type
        synthesized.kind = "generic"
        synthesized.is_generic = True
        synthesized.generic_param = TYPE_PARAM
        synthesized.base_type = None
        prop = synthesized.properties[field]
        prop.type = substitute(prop.type, first.generic_param)
        prop.enum_values = None
        prop.is_type_parameter = True
        self.ctx.schemas[base_type] = synthesized
        return field

    def _mark_explicit(self, base: SchemaDefinition, usages: list[GenericUsage]) -> str | None:
        if base.kind not in ("object", "generic") or base.type_text is not None:
            return None
        structural = next((u for u in usages if u.field), None)
        if structural is not None:
            field = structural.field
            nullable = structural.nullable
        else:
            first, field = self._template(usages)
            if first is None:
                return None
            nullable = self.ctx.schemas[first.instance].properties[field].nullable

        existing = base.properties.get(field)
        if existing is None:
            base.properties[field] = PropertyDefinition(
                name=field, type=TYPE_PARAM, nullable=nullable, is_type_parameter=True
            )
        else:
            existing.type = TYPE_PARAM
            existing.enum_values = None
            existing.is_type_parameter = True
            existing.nullable = existing.nullable or nullable
        base.kind = "generic"
        base.is_generic = True
        base.generic_param = TYPE_PARAM
        return field

    def _template(self, usages: list[GenericUsage]) -> tuple[GenericUsage | None, str | None]:
        """Pick the instance and field the base is built from.

        A scalar argument such as ``string`` usually matches more than the
        payload field (``message: string``), so it is only trusted when it
        matches a single property.
        """
        instances = [u for u in usages if u.instance and self._valid_argument(u.generic_param)]
        for usage in instances:
            if _is_scalar_argument(usage.generic_param):
                continue
            fields = payload_fields(self.ctx.schemas[usage.instance], usage.generic_param)
            if fields:
                return usage, fields[0]
        for usage in instances:
            fields = payload_fields(self.ctx.schemas[usage.instance], usage.generic_param)
            if len(fields) == 1:
                return usage, fields[0]
        return None, None

    def _bind_instances(self, base_type: str, field: str, usages: list[GenericUsage]) -> None:
        """Turn instances into aliases of the base where their shape agrees."""
        base = self.ctx.schemas[base_type]
        template_type = base.properties[field].type
        for usage in usages:
            if usage.instance is None:
                continue
            instance = self.ctx.schemas[usage.instance]
            prop = instance.properties.get(field)
            expected = substitute(template_type, TYPE_PARAM, usage.generic_param)
            agrees = (
                self._valid_argument(usage.generic_param)
                and (instance.type_text is None or instance.extends == [base_type])
                and prop is not None
                and (prop.type == expected or matches_argument(prop.type, usage.generic_param))
            )
            if agrees:
                instance.base_type = base_type
                instance.generic_param = usage.generic_param
            else:
                instance.base_type = None
                instance.generic_param = None

    def _release(self, usages: list[GenericUsage]) -> None:
        for usage in usages:
            if usage.instance and usage.instance in self.ctx.schemas:
                schema = self.ctx.schemas[usage.instance]
                schema.base_type = None
                schema.generic_param = None

    def _valid_argument(self, arg: str) -> bool:
        name = arg
        while name.endswith("[]"):
            name = name[:-2]
        return name in SCALAR_NAMES or name in self.ctx.schemas
