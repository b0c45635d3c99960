"""Load API documents and detect which adapter handles them."""

from pathlib import Path

import yaml

from api_codegen_universal.errors import DocumentShapeError, UnknownFormatError
from api_codegen_universal.parser.apifox import is_project_export
from api_codegen_universal.parser.repair import has_marker


def load_document(file_path: Path) -> dict:
    """Read a JSON or YAML document.

    YAML is a superset of JSON, so one loader covers both.
    """
    text = file_path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DocumentShapeError(f"Cannot parse document: {e}", str(file_path)) from e
    if not isinstance(data, dict):
        raise DocumentShapeError("Document root must be a mapping", str(file_path))
    return data


def detect_format(data: dict) -> str:
    """Detect the format of a decoded document.

    Returns: 'openapi' or 'apifox'.
    """
    if is_project_export(data) or "apifoxVersion" in data:
        return "apifox"

    schemas = (data.get("components") or {}).get("schemas") if isinstance(data.get("components"), dict) else None
    if isinstance(schemas, dict) and any(has_marker(str(name)) for name in schemas):
        return "apifox"

    if "openapi" in data:
        return "openapi"
    if "swagger" in data:
        raise UnknownFormatError("Swagger 2.0 documents are not supported; convert to OpenAPI 3 first")
    raise UnknownFormatError("Document is neither OpenAPI 3 nor an Apifox export")
