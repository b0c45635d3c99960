"""State owned by a single ``parse`` call."""

from dataclasses import dataclass

from api_codegen_universal.diagnostics import WarningsCollector
from api_codegen_universal.options import ParseOptions
from api_codegen_universal.parser.base import GenericInfo, SchemaDefinition


@dataclass
class GenericUsage:
    """One concrete use of a generic wrapper, found by detection."""

    base_type: str
    generic_param: str
    field: str | None = None  # known for structural matches only
    instance: str | None = None  # schema name when the usage is a named schema
    nullable: bool = False


class RunContext:
    """Schemas, caches and counters for one run.

    A new context is created for every ``parse`` call and never shared.
    """

    def __init__(self, options: ParseOptions, collector: WarningsCollector,
                 generic_info: dict[str, GenericInfo] | None = None):
        self.options = options
        self.collector = collector
        self.generic_info = generic_info or {}
        self.schemas: dict[str, SchemaDefinition] = {}
        self.generated: dict[str, str] = {}  # structural signature -> schema name
        self.usages: dict[str, list[GenericUsage]] = {}

    @property
    def naming_style(self) -> str:
        return self.options.code_generation.parameter_naming_style

    def add_usage(self, usage: GenericUsage) -> None:
        self.usages.setdefault(usage.base_type, []).append(usage)

    def unique_name(self, name: str) -> str:
        candidate, suffix = name, 2
        while candidate in self.schemas:
            candidate = f"{name}{suffix}"
            suffix += 1
        return candidate
