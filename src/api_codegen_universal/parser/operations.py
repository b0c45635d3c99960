"""Declared operations -> ApiDefinition, lifting inline payloads into schemas."""

import logging
import re

from api_codegen_universal.context import GenericUsage, RunContext
from api_codegen_universal.generator.naming import convert, to_pascal_case
from api_codegen_universal.parser.base import (
    PARAM_LOCATIONS,
    ApiDefinition,
    ParametersDefinition,
    RequestBodyDefinition,
    ResponseDefinition,
    SchemaDefinition,
    SchemaReference,
)
from api_codegen_universal.parser.classify import PathClassifier
from api_codegen_universal.parser.generic import GenericDetector
from api_codegen_universal.parser.schema import SchemaExtractor
from api_codegen_universal.parser.typetree import (
    ArrayType,
    DeclaredOperation,
    IntersectionType,
    Member,
    ObjectType,
    RefType,
    is_scalar,
    render_type,
    strip_null,
)

logger = logging.getLogger(__name__)


def generate_operation_id(method: str, path: str) -> str:
    """``get /users/{id}/posts`` -> ``getUsersByIdPosts``."""
    parts = []
    for segment in path.split("/"):
        if not segment:
            continue
        param = re.fullmatch(r"\{([^}]*)\}", segment)
        if param:
            parts.append("By" + to_pascal_case(param.group(1)))
        else:
            parts.append(to_pascal_case(segment))
    return method.lower() + "".join(parts)


class OperationExtractor:
    """Builds ApiDefinitions and registers the schemas they need."""

    def __init__(self, ctx: RunContext, extractor: SchemaExtractor,
                 detector: GenericDetector, classifier: PathClassifier):
        self.ctx = ctx
        self.extractor = extractor
        self.detector = detector
        self.classifier = classifier

    def extract_all(self, operations: list[DeclaredOperation]) -> list[ApiDefinition]:
        used = {op.operation_id for op in operations if op.operation_id}
        apis = []
        for operation in operations:
            op_id = operation.operation_id
            if not op_id:
                op_id = self._unique_id(generate_operation_id(operation.method, operation.path), used)
            apis.append(self.extract(operation, op_id))
        logger.debug("Extracted %d operations", len(apis))
        return apis

    def extract(self, operation: DeclaredOperation, op_id: str) -> ApiDefinition:
        parameters = self.parameters(operation, op_id)
        request_body = None
        if operation.request_body is not None:
            body = operation.request_body
            request_body = RequestBodyDefinition(
                description=body.description,
                required=body.required,
                content={
                    media: self.payload_reference(node, f"{op_id}_RequestBody")
                    for media, node in body.content.items()
                },
            )

        responses = {}
        for status, response in operation.responses.items():
            responses[status] = ResponseDefinition(
                description=response.description,
                content={
                    media: self.payload_reference(node, f"{op_id}_Response", status)
                    for media, node in response.content.items()
                },
            )

        return ApiDefinition(
            path=operation.path,
            method=operation.method.upper(),
            operation_id=op_id,
            summary=operation.summary,
            description=operation.description,
            tags=operation.tags,
            deprecated=operation.deprecated,
            parameters=parameters,
            request_body=request_body,
            responses=responses,
            category=self.classifier.classify(operation.path),
        )

    def parameters(self, operation: DeclaredOperation, op_id: str) -> ParametersDefinition:
        """One schema per location that has at least one parameter."""
        grouped = {}
        for location in PARAM_LOCATIONS:
            members = tuple(
                Member(p.name, p.node, not p.required, p.comment)
                for p in operation.parameters
                if p.location == location
            )
            if not members:
                continue
            name = self.ctx.unique_name(
                convert(f"{op_id}_{location.capitalize()}_Params", self.ctx.naming_style)
            )
            self.ctx.schemas[name] = self.extractor.extract(ObjectType(members), name)
            grouped[location] = SchemaReference.to(name)
        return ParametersDefinition(**grouped)

    def payload_reference(self, node, base_name: str, status: str | None = None) -> SchemaReference:
        """Resolve one payload type.

        Order: structural generic, plain reference, scalar, array, anonymous
        object (registered once per distinct shape), anything else inline.
        """
        match = self.detector.structural(node)
        if match is not None:
            self.ctx.add_usage(GenericUsage(
                base_type=match.base_type,
                generic_param=match.generic_param,
                field=match.field,
                nullable=match.nullable,
            ))
            return SchemaReference.to(match.base_type, type_args=[match.generic_param])

        bare, _ = strip_null(node)
        if isinstance(bare, RefType):
            return SchemaReference.to(bare.name)
        if is_scalar(bare):
            text = render_type(bare)
            return SchemaReference.of(SchemaDefinition(name=text, kind="primitive", type_text=text))
        if isinstance(bare, ArrayType):
            text = render_type(bare)
            items = self.payload_reference(bare.item, f"{base_name}_Item", status)
            return SchemaReference.of(SchemaDefinition(name=text, kind="array", items=items, type_text=text))
        if isinstance(bare, (ObjectType, IntersectionType)):
            return SchemaReference.to(self.register(bare, base_name, status))
        return SchemaReference.of(self.extractor.extract(bare, render_type(bare)))

    def register(self, node, base_name: str, status: str | None = None) -> str:
        """Register an anonymous shape, reusing an earlier schema with the same shape."""
        signature = render_type(node)
        if signature in self.ctx.generated:
            return self.ctx.generated[signature]

        style = self.ctx.naming_style
        name = convert(base_name, style)
        if name in self.ctx.schemas and status is not None:
            name = convert(f"{base_name}_{status}", style)
        name = self.ctx.unique_name(name)

        self.ctx.schemas[name] = self.extractor.extract(node, name)
        self.ctx.generated[signature] = name
        return name

    @staticmethod
    def _unique_id(candidate: str, used: set) -> str:
        op_id, suffix = candidate, 2
        while op_id in used:
            op_id = f"{candidate}{suffix}"
            suffix += 1
        used.add(op_id)
        return op_id
