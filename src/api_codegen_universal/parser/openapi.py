"""OpenAPI 3.x adapter: runs the whole normalization pipeline."""

import logging
from datetime import datetime, timezone

from api_codegen_universal.context import GenericUsage, RunContext
from api_codegen_universal.diagnostics import WarningsCollector
from api_codegen_universal.errors import DocumentShapeError, InvalidDocumentError
from api_codegen_universal.generator.declarations import DeclarationEmitter
from api_codegen_universal.generator.synthesis import GenericSynthesizer
from api_codegen_universal.options import ParseOptions
from api_codegen_universal.parser.base import Metadata, StandardOutput
from api_codegen_universal.parser.classify import PathClassifier
from api_codegen_universal.parser.generic import GenericDetector
from api_codegen_universal.parser.operations import OperationExtractor
from api_codegen_universal.parser.repair import CompatibilityRepair
from api_codegen_universal.parser.schema import SchemaExtractor
from api_codegen_universal.parser.typetree import TypeTreeConverter

logger = logging.getLogger(__name__)


def check_shape(document) -> None:
    """Fatal structural checks that repair cannot fix."""
    if not isinstance(document, dict):
        raise DocumentShapeError(f"Document root must be a mapping, got {type(document).__name__}")
    if "swagger" in document and "openapi" not in document:
        raise DocumentShapeError("Swagger 2.0 documents are not supported", "#/swagger")
    if "paths" in document and not isinstance(document["paths"], dict):
        raise DocumentShapeError("'paths' must be a mapping", "#/paths")
    components = document.get("components")
    if components is not None and not isinstance(components, dict):
        raise DocumentShapeError("'components' must be a mapping", "#/components")
    schemas = (components or {}).get("schemas")
    if schemas is not None and not isinstance(schemas, dict):
        raise DocumentShapeError("'components.schemas' must be a mapping", "#/components/schemas")


def validate(document: dict) -> bool:
    """Minimal structural validation: an OpenAPI 3 version and a paths map."""
    version = document.get("openapi")
    return isinstance(version, str) and version.startswith("3") and isinstance(document.get("paths"), dict)


class OpenApiAdapter:
    """Parses OpenAPI 3.x documents into a StandardOutput."""

    name = "openapi"
    validate_by_default = True

    def parse(self, document: dict, options: ParseOptions | None = None,
              source: str | None = None) -> StandardOutput:
        options = options or ParseOptions()
        check_shape(document)
        document = self.prepare(document)

        collector = WarningsCollector(self.name, options.log_level, options.log_sample_limit)
        validation = self.validate_by_default if options.validation is None else options.validation
        if validation:
            if not validate(document):
                raise InvalidDocumentError("Expected an 'openapi: 3.x' version and a 'paths' mapping")
        else:
            collector.skip_validation()

        repaired = CompatibilityRepair(collector).repair(document)
        ctx = RunContext(options, collector, repaired.generic_info)
        declared = TypeTreeConverter(repaired.document).convert()
        detector = GenericDetector(declared.types, ctx.generic_info, options.generic_wrappers, collector)
        extractor = SchemaExtractor()

        for name, declared_type in declared.types.items():
            schema = extractor.extract(declared_type.node, name, declared_type.comment)
            match = detector.detect(name, declared_type.node)
            if match is not None:
                schema.base_type = match.base_type
                schema.generic_param = match.generic_param
                ctx.add_usage(GenericUsage(
                    base_type=match.base_type,
                    generic_param=match.generic_param,
                    field=match.field,
                    instance=name,
                    nullable=match.nullable,
                ))
            ctx.schemas[name] = schema

        classifier = PathClassifier(options.path_classification)
        apis = OperationExtractor(ctx, extractor, detector, classifier).extract_all(declared.operations)
        GenericSynthesizer(ctx).run()

        generation = options.code_generation
        emitter = DeclarationEmitter(generation.parameter_naming_style, generation.declaration_export_mode)
        declarations = emitter.emit_all(ctx.schemas) if generation.output.declarations else {}

        metadata = self.metadata(repaired.document, options, source)
        metadata.warnings = collector.flush()
        logger.debug("Parsed %d schemas and %d operations", len(ctx.schemas), len(apis))
        return StandardOutput(
            schemas=ctx.schemas if generation.output.schemas else {},
            declarations=declarations,
            apis=apis if generation.output.apis else [],
            metadata=metadata,
        )

    def prepare(self, document: dict) -> dict:
        """Hook for adapters whose input needs converting first."""
        return document

    def metadata(self, document: dict, options: ParseOptions, source: str | None) -> Metadata:
        info = document.get("info") if isinstance(document.get("info"), dict) else {}
        servers = document.get("servers") or []
        base_url = servers[0].get("url") if servers and isinstance(servers[0], dict) else None
        return Metadata(
            title=info.get("title"),
            description=info.get("description"),
            version=str(info["version"]) if info.get("version") is not None else None,
            base_url=base_url,
            common_prefix=options.path_classification.common_prefix or None,
            generated_at=datetime.now(timezone.utc).isoformat(),
            source=source or self.name,
            options=options.model_dump(mode="json", by_alias=True),
        )


def parse_openapi(document: dict, options: ParseOptions | None = None,
                  source: str | None = None) -> StandardOutput:
    return OpenApiAdapter().parse(document, options, source)
