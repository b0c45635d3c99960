"""Apifox export adapter.

Apifox exports either an OpenAPI-shaped document (often with marker-named
schemas such as ``ResultVO«User»``) or a project payload of the form
``{"apiDetails": [...], "dataSchemas": [...]}`` whose references point at
``#/definitions/<schema id>``. The project payload is converted into an
OpenAPI document first, then both go through the OpenAPI pipeline.
"""

import copy
import logging
import re

from api_codegen_universal.options import ParseOptions
from api_codegen_universal.parser.base import StandardOutput
from api_codegen_universal.parser.openapi import OpenApiAdapter
from api_codegen_universal.parser.refs import is_reference, schema_pointer
from api_codegen_universal.parser.repair import iter_nodes

logger = logging.getLogger(__name__)

DEFINITION_REF = re.compile(r"^#/definitions/(\d+)$")
PARAM_LOCATIONS = ("path", "query", "header", "cookie")
JSON_CONTENT = "application/json"


def is_project_export(document) -> bool:
    return (
        isinstance(document, dict)
        and isinstance(document.get("apiDetails"), list)
        and isinstance(document.get("dataSchemas"), list)
    )


class SchemaIdResolver:
    """Maps Apifox data-schema ids to schema names."""

    def __init__(self, data_schemas: list[dict]):
        self.names = {
            str(schema["id"]): schema["name"]
            for schema in data_schemas
            if isinstance(schema, dict) and "id" in schema and schema.get("name")
        }

    def resolve(self, ref: str) -> str | None:
        match = DEFINITION_REF.match(ref)
        return self.names.get(match.group(1)) if match else None

    def rewrite(self, tree) -> None:
        """Point every resolvable ``#/definitions/<id>`` at the named schema.

        Unknown ids are left untouched and later degraded by repair.
        """
        for node, _ in iter_nodes(tree):
            if is_reference(node):
                name = self.resolve(node["$ref"])
                if name is not None:
                    node["$ref"] = schema_pointer(name)


def _parameter(param: dict, location: str) -> dict:
    schema = param.get("schema") or {"type": param.get("type") or "string"}
    converted = {
        "name": param["name"],
        "in": location,
        "required": location == "path" or bool(param.get("required")),
        "schema": schema,
    }
    if param.get("description"):
        converted["description"] = param["description"]
    if param.get("example") not in (None, ""):
        converted["example"] = param["example"]
    return converted


def _operation(detail: dict) -> dict:
    operation = {"summary": detail.get("name"), "tags": list(detail.get("tags") or [])}
    if detail.get("operationId"):
        operation["operationId"] = detail["operationId"]
    if detail.get("description"):
        operation["description"] = detail["description"]

    parameters = []
    for location in PARAM_LOCATIONS:
        for param in (detail.get("parameters") or {}).get(location) or []:
            if param.get("enable") is False or not param.get("name"):
                continue
            parameters.append(_parameter(param, location))
    if parameters:
        operation["parameters"] = parameters

    body = detail.get("requestBody") or {}
    if body.get("jsonSchema") and body.get("type") not in (None, "none"):
        media = JSON_CONTENT if body["type"] in ("json", JSON_CONTENT) else body["type"]
        operation["requestBody"] = {"required": True, "content": {media: {"schema": body["jsonSchema"]}}}

    responses = {}
    for response in detail.get("responses") or []:
        converted = {"description": response.get("name") or "Response"}
        if response.get("jsonSchema"):
            content_type = response.get("contentType") or "json"
            media = JSON_CONTENT if content_type in ("json", JSON_CONTENT) else content_type
            converted["content"] = {media: {"schema": response["jsonSchema"]}}
        responses.setdefault(str(response.get("code", "default")), converted)
    operation["responses"] = responses
    return operation


def convert_project_export(document: dict, released_only: bool = True) -> dict:
    """Convert an ``{apiDetails, dataSchemas}`` payload into OpenAPI 3."""
    document = copy.deepcopy(document)
    schemas = {}
    for data_schema in document["dataSchemas"]:
        if not isinstance(data_schema, dict) or not data_schema.get("name"):
            continue
        schema = dict(data_schema.get("jsonSchema") or {"type": "object"})
        if data_schema.get("description") and "description" not in schema:
            schema["description"] = data_schema["description"]
        schemas.setdefault(data_schema["name"], schema)

    paths: dict[str, dict] = {}
    skipped = 0
    for detail in document["apiDetails"]:
        if not isinstance(detail, dict) or not detail.get("path") or not detail.get("method"):
            continue
        if released_only and detail.get("status", "released") != "released":
            skipped += 1
            continue
        item = paths.setdefault(detail["path"], {})
        item.setdefault(detail["method"].lower(), _operation(detail))
    if skipped:
        logger.debug("Skipped %d unreleased Apifox operations", skipped)

    converted = {
        "openapi": "3.0.3",
        "info": dict(document.get("info") or {}),
        "paths": paths,
        "components": {"schemas": schemas},
    }
    SchemaIdResolver(document["dataSchemas"]).rewrite(converted)
    return converted


class ApifoxAdapter(OpenApiAdapter):
    """Apifox exports; validation is skipped unless asked for."""

    name = "apifox"
    validate_by_default = False

    def __init__(self, released_only: bool = True):
        self.released_only = released_only

    def prepare(self, document: dict) -> dict:
        if is_project_export(document):
            return convert_project_export(document, self.released_only)
        return document


def parse_apifox(document: dict, options: ParseOptions | None = None,
                 source: str | None = None) -> StandardOutput:
    return ApifoxAdapter().parse(document, options, source)
