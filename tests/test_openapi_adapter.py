import logging
from pathlib import Path

import pytest
import yaml

from api_codegen_universal.errors import DocumentShapeError, InvalidDocumentError
from api_codegen_universal.options import (
    CodeGenerationOptions,
    OutputOptions,
    ParseOptions,
    PathClassificationOptions,
)
from api_codegen_universal.parser.openapi import OpenApiAdapter, parse_openapi, validate

FIXTURES = Path(__file__).parent / "fixtures"


def _petstore() -> dict:
    return yaml.safe_load((FIXTURES / "petstore.yaml").read_text(encoding="utf-8"))


def _api(result, operation_id):
    return [a for a in result.apis if a.operation_id == operation_id][0]


def _iter_refs(reference):
    """Yield every schema name a SchemaReference depends on."""
    if reference is None:
        return
    if reference.kind == "ref":
        yield reference.ref
        for arg in reference.type_args or []:
            yield arg.rstrip("[]")
    else:
        yield from _iter_refs(reference.inline.items)


class TestOpenApiPipeline:
    def test_counts(self):
        result = parse_openapi(_petstore())
        assert len(result.apis) == 7
        assert set(result.schemas) >= {"Pet", "PetStatus", "Error", "ApiResponse"}
        assert set(result.declarations) == set(result.schemas)

    def test_metadata(self):
        result = parse_openapi(_petstore(), source="petstore.yaml")
        assert result.metadata.title == "Petstore"
        assert result.metadata.description == "Sample pet store"
        assert result.metadata.version == "1.0.0"
        assert result.metadata.base_url == "https://petstore.example.com/api/v1"
        assert result.metadata.source == "petstore.yaml"
        assert result.metadata.options["logLevel"] == "error"

    def test_parameters_grouped_by_location(self):
        result = parse_openapi(_petstore())
        api = _api(result, "listPets")
        assert api.parameters.query.ref == "ListPetsQueryParams"
        assert api.parameters.header.ref == "ListPetsHeaderParams"
        assert api.parameters.path is None
        assert api.parameters.cookie is None
        query = result.schemas["ListPetsQueryParams"]
        assert query.properties["limit"].description == "How many items to return"
        assert query.properties["limit"].maximum == 100
        assert result.schemas["ListPetsHeaderParams"].required == ["X-Trace-Id"]

    def test_path_parameters_are_required(self):
        result = parse_openapi(_petstore())
        schema = result.schemas["GetInventoryPathParams"]
        assert schema.required == ["storeId"]

    def test_structural_generic_response(self):
        result = parse_openapi(_petstore())
        reference = _api(result, "listPets").responses["200"].content["application/json"]
        assert reference.kind == "ref"
        assert reference.ref == "ApiResponse"
        assert reference.type_args == ["Pet[]"]
        single = _api(result, "showPetById").responses["200"].content["application/json"]
        assert single.type_args == ["Pet"]

    def test_wrapper_becomes_generic(self):
        result = parse_openapi(_petstore())
        base = result.schemas["ApiResponse"]
        assert base.kind == "generic"
        assert base.is_generic is True
        assert base.properties["data"].type == "T"
        assert result.declarations["ApiResponse"] == (
            "export interface ApiResponse<T = any> {\n"
            "  code: number;\n"
            "  message?: string;\n"
            "  data?: T;\n"
            "}"
        )

    def test_identical_anonymous_responses_share_one_schema(self):
        result = parse_openapi(_petstore())
        inventory = _api(result, "getInventory").responses["200"].content["application/json"]
        summary = _api(result, "getStoreSummary").responses["200"].content["application/json"]
        assert inventory.ref == summary.ref == "GetInventoryResponse"
        assert "GetStoreSummaryResponse" not in result.schemas

    def test_request_body_lifted(self):
        result = parse_openapi(_petstore())
        body = _api(result, "createPet").request_body
        assert body.required is True
        assert body.content["application/json"].ref == "CreatePetRequestBody"
        assert result.schemas["CreatePetRequestBody"].required == ["name"]

    def test_scalar_response_inline(self):
        result = parse_openapi(_petstore())
        reference = _api(result, "health").responses["200"].content["text/plain"]
        assert reference.kind == "inline"
        assert reference.inline.kind == "primitive"
        assert reference.inline.type_text == "string"

    def test_missing_operation_id_generated(self):
        result = parse_openapi(_petstore())
        api = _api(result, "deleteApiV1PetsByPetId")
        assert api.method == "DELETE"
        assert api.parameters.path.ref == "DeleteApiV1PetsByPetIdPathParams"
        assert api.responses["204"].content == {}

    def test_null_type_becomes_nullable(self):
        result = parse_openapi(_petstore())
        pet = result.schemas["Pet"]
        assert pet.properties["owner"].nullable is True
        assert pet.properties["owner"].type != "null"
        assert pet.properties["birthday"].type == "string"
        assert pet.properties["birthday"].nullable is True
        assert pet.properties["birthday"].format == "date"

    def test_property_documentation(self):
        result = parse_openapi(_petstore())
        prop = result.schemas["Pet"].properties["id"]
        assert prop.description == "Unique identifier"
        assert prop.example == 10
        assert prop.format == "int64"
        assert result.schemas["Pet"].properties["status"].enum_values == ["available", "pending", "sold"]

    def test_enum_schema(self):
        result = parse_openapi(_petstore())
        assert result.schemas["PetStatus"].kind == "enum"
        assert result.declarations["PetStatus"].startswith("/**\n * Lifecycle state of a pet\n */\nexport enum PetStatus {")

    def test_reference_integrity(self):
        result = parse_openapi(_petstore())
        for api in result.apis:
            references = [api.parameters.query, api.parameters.path, api.parameters.header, api.parameters.cookie]
            if api.request_body:
                references += list(api.request_body.content.values())
            for response in api.responses.values():
                references += list(response.content.values())
            for reference in references:
                for name in _iter_refs(reference):
                    assert name in result.schemas, name
        for schema in result.schemas.values():
            for name in _iter_refs(schema.items):
                assert name in result.schemas, name

    def test_runs_are_deterministic(self):
        first = parse_openapi(_petstore()).to_dict()
        second = parse_openapi(_petstore()).to_dict()
        for key in ("schemas", "declarations", "apis"):
            assert first[key] == second[key]


class TestOpenApiOptions:
    def test_categories_with_common_prefix(self):
        options = ParseOptions(path_classification=PathClassificationOptions(common_prefix="/api/v1"))
        result = parse_openapi(_petstore(), options)
        assert _api(result, "listPets").category.segments == ["pets"]
        assert _api(result, "getInventory").category.file_path == "api/stores/inventory/index.ts"
        assert result.metadata.common_prefix == "/api/v1"

    def test_categories_without_prefix(self):
        result = parse_openapi(_petstore())
        assert _api(result, "listPets").category.segments == ["api", "v1"]
        assert _api(result, "health").category.segments == ["health"]

    def test_naming_style_applies_to_generated_names(self):
        options = ParseOptions(code_generation=CodeGenerationOptions(parameter_naming_style="snake_case"))
        result = parse_openapi(_petstore(), options)
        assert _api(result, "listPets").parameters.query.ref == "list_pets_query_params"
        assert "export interface api_response<T = any> {" in result.declarations["ApiResponse"]

    def test_apis_disabled_still_generates_parameter_schemas(self):
        options = ParseOptions(code_generation=CodeGenerationOptions(output=OutputOptions(apis=False)))
        result = parse_openapi(_petstore(), options)
        assert result.apis == []
        assert "ListPetsQueryParams" in result.schemas
        assert "ListPetsQueryParams" in result.declarations

    def test_declarations_and_schemas_disabled(self):
        options = ParseOptions(code_generation=CodeGenerationOptions(
            output=OutputOptions(schemas=False, declarations=False)
        ))
        result = parse_openapi(_petstore(), options)
        assert result.schemas == {}
        assert result.declarations == {}
        assert len(result.apis) == 7

    def test_camel_case_config_keys(self):
        options = ParseOptions.model_validate({
            "pathClassification": {"commonPrefix": "/api/v1", "maxDepth": 1},
            "codeGeneration": {"declarationExportMode": "declare"},
        })
        result = parse_openapi(_petstore(), options)
        assert _api(result, "getInventory").category.segments == ["stores"]
        assert result.declarations["Pet"].startswith("declare interface Pet {")


class TestOpenApiErrors:
    def test_root_must_be_mapping(self):
        with pytest.raises(DocumentShapeError):
            parse_openapi(["not", "a", "document"])

    def test_swagger_two_rejected(self):
        with pytest.raises(DocumentShapeError):
            parse_openapi({"swagger": "2.0", "paths": {}})

    def test_paths_must_be_mapping(self):
        with pytest.raises(DocumentShapeError) as exc:
            parse_openapi({"openapi": "3.0.0", "paths": []})
        assert exc.value.location == "#/paths"

    def test_validation_requires_version(self):
        with pytest.raises(InvalidDocumentError):
            parse_openapi({"paths": {}})

    def test_validation_can_be_disabled(self):
        result = parse_openapi({"paths": {}}, ParseOptions(validation=False))
        assert result.apis == []
        assert result.metadata.warnings == {"validation": "skipped", "counts": {}, "samples": {}}

    def test_validate_helper(self):
        assert validate({"openapi": "3.1.0", "paths": {}}) is True
        assert validate({"openapi": "2.0", "paths": {}}) is False


class TestWarningsSummary:
    def test_summary_in_metadata(self):
        doc = {
            "openapi": "3.0.0",
            "paths": {
                "/a": {"get": {"operationId": "dup", "responses": {}}},
                "/b": {"post": {"operationId": "dup", "responses": {}}},
            },
        }
        result = parse_openapi(doc)
        assert [a.operation_id for a in result.apis] == ["dup", "dup_POST_b"]
        assert result.metadata.warnings["counts"] == {"duplicateOperationIds": 1}

    def test_no_summary_for_clean_document(self):
        doc = {"openapi": "3.0.0", "paths": {}}
        assert parse_openapi(doc).metadata.warnings is None

    def test_summary_logged_once_when_level_allows(self, caplog):
        doc = {"openapi": "3.0.0", "paths": {"/a": {"get": {"operationId": "x"}}, "/b": {"get": {"operationId": "x"}}}}
        with caplog.at_level(logging.WARNING, logger="api_codegen_universal"):
            parse_openapi(doc, ParseOptions(log_level="warn"))
        records = [r for r in caplog.records if "Completed with warnings" in r.getMessage()]
        assert len(records) == 1
        assert "OPENAPI_WARNINGS_SUMMARY" in records[0].getMessage()

    def test_summary_not_logged_at_default_level(self, caplog):
        doc = {"openapi": "3.0.0", "paths": {"/a": {"get": {"operationId": "x"}}, "/b": {"get": {"operationId": "x"}}}}
        with caplog.at_level(logging.DEBUG, logger="api_codegen_universal"):
            parse_openapi(doc)
        assert not [r for r in caplog.records if "Completed with warnings" in r.getMessage()]

    def test_each_run_has_fresh_state(self):
        adapter = OpenApiAdapter()
        doc = {"openapi": "3.0.0", "paths": {"/a": {"get": {"operationId": "x"}}, "/b": {"get": {"operationId": "x"}}}}
        first = adapter.parse(doc)
        second = adapter.parse(doc)
        assert first.metadata.warnings["counts"] == second.metadata.warnings["counts"] == {"duplicateOperationIds": 1}
