"""Local JSON pointer resolution with lenient segment matching."""

from urllib.parse import quote, unquote

from api_codegen_universal.errors import ReferenceNotFound

SCHEMA_PREFIX = "#/components/schemas/"


def is_reference(node) -> bool:
    return isinstance(node, dict) and isinstance(node.get("$ref"), str)


def unescape_segment(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def escape_segment(segment: str) -> str:
    return segment.replace("~", "~0").replace("/", "~1")


def segment_variants(segment: str) -> list[str]:
    """Candidate keys for one pointer segment, most literal first."""
    variants = [segment]
    decoded = unquote(segment)
    for candidate in (decoded, unescape_segment(segment), unescape_segment(decoded)):
        if candidate not in variants:
            variants.append(candidate)
    return variants


def ref_name(pointer: str) -> str:
    """Decoded last segment of a pointer."""
    last = pointer.rsplit("/", 1)[-1]
    return unescape_segment(unquote(last))


def schema_pointer(name: str) -> str:
    return SCHEMA_PREFIX + quote(escape_segment(name), safe="~_-.")


class RefResolver:
    """Resolves ``#/...`` pointers against one document root.

    Results are cached per pointer string; build a new resolver whenever
    the document is rewritten.
    """

    def __init__(self, root):
        self.root = root
        self._cache: dict[str, object] = {}

    def resolve(self, pointer: str):
        if pointer in self._cache:
            return self._cache[pointer]
        if not pointer.startswith("#"):
            raise ReferenceNotFound(pointer)

        node = self.root
        body = pointer[1:].lstrip("/")
        for segment in body.split("/") if body else []:
            node = self._step(node, segment, pointer)

        self._cache[pointer] = node
        return node

    def exists(self, pointer: str) -> bool:
        try:
            self.resolve(pointer)
        except ReferenceNotFound:
            return False
        return True

    def deref(self, node, seen: frozenset = frozenset()):
        """Follow a chain of references to the first non-reference node."""
        while is_reference(node):
            pointer = node["$ref"]
            if pointer in seen:
                raise ReferenceNotFound(pointer, "cycle")
            seen = seen | {pointer}
            node = self.resolve(pointer)
        return node

    @staticmethod
    def _step(node, segment: str, pointer: str):
        if isinstance(node, dict):
            for candidate in segment_variants(segment):
                if candidate in node:
                    return node[candidate]
        elif isinstance(node, list):
            for candidate in segment_variants(segment):
                if candidate.isdigit() and int(candidate) < len(node):
                    return node[int(candidate)]
        raise ReferenceNotFound(pointer, segment)
