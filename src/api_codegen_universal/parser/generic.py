"""Recognize wrapper types parameterized over one payload type.

Two conventions are understood:

* a hint recorded during repair for marker-named schemas
  (``ResultVO«User»`` becomes ``ResultVO_User`` with base ``ResultVO``)
* the structural shape ``Wrapper & { field: Payload }`` where ``Wrapper`` is
  on the allow-list and the override replaces exactly one field with a
  reference or an array of references
"""

import re
from dataclasses import dataclass

from api_codegen_universal import diagnostics
from api_codegen_universal.diagnostics import WarningsCollector
from api_codegen_universal.parser.base import GenericInfo
from api_codegen_universal.parser.typetree import (
    ArrayType,
    IntersectionType,
    ObjectType,
    RefType,
    render_type,
    strip_null,
)

# Type names that marker-named schemas commonly use for their arguments.
SCALAR_ARGUMENTS = {
    "String": "string",
    "Long": "number",
    "Integer": "number",
    "Int": "number",
    "Short": "number",
    "Double": "number",
    "Float": "number",
    "BigDecimal": "number",
    "BigInteger": "number",
    "Number": "number",
    "Boolean": "boolean",
    "Object": "unknown",
}
COLLECTION_ARGUMENT = re.compile(r"^(?:List|Set|Collection|ArrayList|Array)_(.+)$")


def argument_type(arg: str) -> str:
    """Type text a marker argument stands for (``List_Long`` -> ``number[]``)."""
    if arg in SCALAR_ARGUMENTS:
        return SCALAR_ARGUMENTS[arg]
    match = COLLECTION_ARGUMENT.match(arg)
    if match:
        return argument_type(match.group(1)) + "[]"
    return arg


@dataclass(frozen=True)
class GenericMatch:
    base_type: str
    generic_param: str
    field: str | None = None
    nullable: bool = False
    source: str = "structural"


class GenericDetector:
    """Detects generic instances; hint first, then structure."""

    def __init__(self, types: dict, generic_info: dict[str, GenericInfo],
                 wrappers: list[str], collector: WarningsCollector):
        self.types = types
        self.generic_info = generic_info
        self.wrappers = list(wrappers)
        self.collector = collector
        self._reported: set[str] = set()

    def detect(self, name: str | None, node) -> GenericMatch | None:
        if name is not None:
            match = self.from_hint(name)
            if match is not None:
                return match
        return self.structural(node)

    def from_hint(self, name: str) -> GenericMatch | None:
        info = self.generic_info.get(name)
        if info is None:
            return None
        if len(info.generics) != 1:
            if name not in self._reported:
                self._reported.add(name)
                self.collector.record(diagnostics.UNMATCHED_GENERICS, {
                    "name": name,
                    "baseType": info.base_type,
                    "generics": list(info.generics),
                    "reason": "expected exactly one type argument",
                })
            return None
        return GenericMatch(
            base_type=info.base_type,
            generic_param=argument_type(info.generics[0]),
            source="hint",
        )

    def structural(self, node) -> GenericMatch | None:
        if not isinstance(node, IntersectionType) or len(node.members) != 2:
            return None
        refs = [m for m in node.members if isinstance(m, RefType)]
        overrides = [m for m in node.members if isinstance(m, ObjectType)]
        if len(refs) != 1 or len(overrides) != 1 or len(overrides[0].members) != 1:
            return None

        wrapper = refs[0].name
        member = overrides[0].members[0]
        payload, nullable = strip_null(member.type)
        if isinstance(payload, ArrayType):
            if not isinstance(payload.item, RefType):
                return None
        elif not isinstance(payload, RefType):
            return None
        if not self.is_wrapper(wrapper, member.name):
            return None
        return GenericMatch(
            base_type=wrapper,
            generic_param=render_type(payload),
            field=member.name,
            nullable=nullable,
        )

    def is_wrapper(self, name: str, field: str) -> bool:
        """Configured wrappers, plus any declared object that has ``field``."""
        if name in self.wrappers:
            return True
        declared = self.types.get(name)
        if declared is None or not isinstance(declared.node, ObjectType):
            return False
        return any(m.name == field for m in declared.node.members)
