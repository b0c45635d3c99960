"""Deterministic fixes for malformed vendor-exported documents.

The passes run in a fixed order on a deep copy of the input:

1. marker rename (``ResultVO«User»`` -> ``ResultVO_User``)
2. dangling ``$ref`` repair
3. ``type: "null"`` repair
4. duplicate ``operationId`` renaming

None of them raise. Each fix is counted on the run's WarningsCollector.
Running the repair on its own output changes nothing.
"""

import copy
import logging
import re

from pydantic import BaseModel

from api_codegen_universal import diagnostics
from api_codegen_universal.diagnostics import WarningsCollector
from api_codegen_universal.parser.base import GenericInfo
from api_codegen_universal.parser.refs import (
    SCHEMA_PREFIX,
    RefResolver,
    is_reference,
    schema_pointer,
    segment_variants,
)

logger = logging.getLogger(__name__)

MARKER_OPEN = "«"
MARKER_CLOSE = "»"
GENERIC_EXTENSION = "x-apifox-generic"
HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")
SLUG_LIMIT = 60


class RepairResult(BaseModel):
    document: dict
    generic_info: dict[str, GenericInfo] = {}


def has_marker(name: str) -> bool:
    return MARKER_OPEN in name


def flatten_name(name: str) -> str:
    """Turn a marker-bearing name into a plain identifier."""
    text = re.sub(r"\s+", "", name)
    text = re.sub(r"[^A-Za-z0-9_]", "_", text)
    text = re.sub(r"_+", "_", text)
    return text.rstrip("_")


def split_marker(name: str) -> tuple[str, list[str]]:
    """Split ``Base«A,B«C»»`` into ``("Base", ["A", "B_C"])``."""
    start = name.index(MARKER_OPEN)
    end = name.rfind(MARKER_CLOSE)
    base = flatten_name(name[:start])
    body = name[start + 1:end] if end > start else name[start + 1:]

    args, depth, current = [], 0, []
    for char in body:
        if char in (MARKER_OPEN, "<"):
            depth += 1
        elif char in (MARKER_CLOSE, ">"):
            depth -= 1
        elif char == "," and depth == 0:
            args.append("".join(current))
            current = []
            continue
        current.append(char)
    args.append("".join(current))
    return base, [flatten_name(a) for a in args if a.strip()]


def slugify_path(path: str) -> str:
    text = re.sub(r"\{([^}]*)\}", r"param_\1", path)
    text = re.sub(r"[^A-Za-z0-9]+", "_", text).strip("_")
    text = text[:SLUG_LIMIT].rstrip("_")
    return text or "root"


def iter_nodes(node, pointer: str = "#"):
    """Yield every mapping in the tree together with its JSON pointer."""
    if isinstance(node, dict):
        yield node, pointer
        for key, value in list(node.items()):
            escaped = str(key).replace("~", "~0").replace("/", "~1")
            yield from iter_nodes(value, f"{pointer}/{escaped}")
    elif isinstance(node, list):
        for index, value in enumerate(node):
            yield from iter_nodes(value, f"{pointer}/{index}")


def iter_operations(document: dict):
    """Yield ``(path, method, operation)`` in file order."""
    paths = document.get("paths") or {}
    for path, item in paths.items():
        if not isinstance(item, dict):
            continue
        for method, operation in item.items():
            if method.lower() in HTTP_METHODS and isinstance(operation, dict):
                yield path, method.lower(), operation


class CompatibilityRepair:
    """Runs every repair pass and collects the generic side table."""

    def __init__(self, collector: WarningsCollector):
        self.collector = collector

    def repair(self, document: dict) -> RepairResult:
        document = copy.deepcopy(document)
        generic_info = self._rename_markers(document)
        self._repair_dangling_refs(document)
        self._repair_null_types(document)
        self._dedupe_operation_ids(document)
        logger.debug("Repair finished: %s", self.collector.counts)
        return RepairResult(document=document, generic_info=generic_info)

    def _rename_markers(self, document: dict) -> dict[str, GenericInfo]:
        schemas = document.get("components", {}).get("schemas") or {}
        renames: dict[str, str] = {}
        rebuilt: dict[str, dict] = {}

        for name, schema in schemas.items():
            if not has_marker(name):
                # An existing plain name always wins over a renamed marker schema.
                if name in rebuilt:
                    _merge_missing(schema, rebuilt[name])
                rebuilt[name] = schema
                continue

            new_name = flatten_name(name)
            base, args = split_marker(name)
            renames[name] = new_name
            if isinstance(schema, dict):
                schema.setdefault(GENERIC_EXTENSION, {"baseType": base, "generics": args})
            if new_name in rebuilt:
                _merge_missing(rebuilt[new_name], schema)
            else:
                rebuilt[new_name] = schema
            self.collector.record(diagnostics.RENAMED_SCHEMAS, {"from": name, "to": new_name})

        if renames:
            schemas.clear()
            schemas.update(rebuilt)
            self._rewrite_refs(document, renames)

        generic_info = {}
        for name, schema in schemas.items():
            hint = schema.get(GENERIC_EXTENSION) if isinstance(schema, dict) else None
            if isinstance(hint, dict) and hint.get("baseType") and isinstance(hint.get("generics"), list):
                generic_info[name] = GenericInfo(base_type=hint["baseType"], generics=list(hint["generics"]))
        return generic_info

    @staticmethod
    def _rewrite_refs(document: dict, renames: dict[str, str]) -> None:
        for node, _ in iter_nodes(document):
            if not is_reference(node) or not node["$ref"].startswith(SCHEMA_PREFIX):
                continue
            rest = node["$ref"][len(SCHEMA_PREFIX):]
            segment, sep, tail = rest.partition("/")
            for candidate in segment_variants(segment):
                if candidate in renames:
                    node["$ref"] = schema_pointer(renames[candidate]) + sep + tail
                    break

    def _repair_dangling_refs(self, document: dict) -> None:
        resolver = RefResolver(document)
        for node, pointer in iter_nodes(document):
            if not is_reference(node) or resolver.exists(node["$ref"]):
                continue
            broken = node.pop("$ref")
            node.setdefault("type", "object")
            note = f"Broken reference: {broken}"
            description = node.get("description")
            node["description"] = f"{description} ({note})" if description else note
            self.collector.record(diagnostics.BROKEN_REFS, {"ref": broken, "location": pointer})

    def _repair_null_types(self, document: dict) -> None:
        for node, pointer in iter_nodes(document):
            declared = node.get("type")
            if declared == "null":
                del node["type"]
            elif isinstance(declared, list) and "null" in declared:
                remaining = [t for t in declared if t != "null"]
                if not remaining:
                    del node["type"]
                elif len(remaining) == 1:
                    node["type"] = remaining[0]
                else:
                    node["type"] = remaining
            else:
                continue
            node["nullable"] = True
            self.collector.record(diagnostics.NULL_TYPES, pointer)

    def _dedupe_operation_ids(self, document: dict) -> None:
        declared = {
            op["operationId"]
            for _, _, op in iter_operations(document)
            if isinstance(op.get("operationId"), str)
        }
        used: set[str] = set()
        for path, method, operation in iter_operations(document):
            op_id = operation.get("operationId")
            if not isinstance(op_id, str) or not op_id:
                continue
            if op_id not in used:
                used.add(op_id)
                continue

            candidate = f"{op_id}_{method.upper()}_{slugify_path(path)}"
            new_id, suffix = candidate, 2
            while new_id in used or new_id in declared:
                new_id = f"{candidate}_{suffix}"
                suffix += 1
            operation["operationId"] = new_id
            used.add(new_id)
            self.collector.record(
                diagnostics.DUPLICATE_OPERATION_IDS,
                {"from": op_id, "to": new_id, "path": path, "method": method.upper()},
            )


def _merge_missing(target, source) -> None:
    if isinstance(target, dict) and isinstance(source, dict):
        for key, value in source.items():
            target.setdefault(key, value)
