"""CLI entry point for api-codegen-universal."""

import json
import logging
from pathlib import Path

import click

from api_codegen_universal.errors import CodegenError
from api_codegen_universal.options import ParseOptions, load_options
from api_codegen_universal.parser.apifox import ApifoxAdapter
from api_codegen_universal.parser.base import StandardOutput
from api_codegen_universal.parser.detect import detect_format, load_document
from api_codegen_universal.parser.openapi import OpenApiAdapter

_ADAPTERS = {
    "openapi": OpenApiAdapter,
    "apifox": ApifoxAdapter,
}

_LOGGING_LEVELS = {
    "silent": logging.CRITICAL + 1,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def _build_options(config: Path | None, common_prefix: str | None, max_depth: int | None,
                   naming_style: str | None, export_mode: str | None, log_level: str | None,
                   no_validate: bool) -> ParseOptions:
    options = load_options(config) if config else ParseOptions()
    if common_prefix is not None:
        options.path_classification.common_prefix = common_prefix
    if max_depth is not None:
        options.path_classification.max_depth = max_depth
    if naming_style is not None:
        options.code_generation.parameter_naming_style = naming_style
    if export_mode is not None:
        options.code_generation.declaration_export_mode = export_mode
    if log_level is not None:
        options.log_level = log_level
    if no_validate:
        options.validation = False
    return options


def _parse_doc(file_path: Path, fmt: str, options: ParseOptions) -> StandardOutput:
    """Parse API document based on format."""
    try:
        document = load_document(file_path)
        if fmt == "auto":
            fmt = detect_format(document)
        return _ADAPTERS[fmt]().parse(document, options, source=str(file_path))
    except CodegenError as e:
        raise click.ClickException(str(e)) from e


def _common_options(func):
    decorators = [
        click.option("--format", "fmt", default="auto", type=click.Choice(["auto", "openapi", "apifox"]), help="Document format."),
        click.option("--config", type=click.Path(exists=True, path_type=Path), default=None, help="YAML/JSON options file."),
        click.option("--common-prefix", default=None, help="Path prefix ignored when classifying routes."),
        click.option("--max-depth", type=click.IntRange(min=1), default=None, help="Maximum category depth."),
        click.option("--naming-style", type=click.Choice(["PascalCase", "camelCase", "snake_case", "kebab-case"]), default=None,
                     help="Naming style for generated names. With kebab-case, declarations use snake_case identifiers."),
        click.option("--export-mode", type=click.Choice(["export", "declare"]), default=None),
        click.option("--log-level", type=click.Choice(list(_LOGGING_LEVELS)), default=None),
        click.option("--no-validate", is_flag=True, help="Skip structural validation."),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


@click.group()
def main():
    """API Codegen Universal: normalize API documents and emit TypeScript declarations."""
    pass


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output JSON file.")
@_common_options
def parse(doc_path: Path, output: Path, fmt: str, config: Path | None, common_prefix: str | None,
          max_depth: int | None, naming_style: str | None, export_mode: str | None,
          log_level: str | None, no_validate: bool):
    """Parse an API document into the normalized JSON model."""
    options = _build_options(config, common_prefix, max_depth, naming_style, export_mode, log_level, no_validate)
    logging.basicConfig(level=_LOGGING_LEVELS[options.log_level], format="%(levelname)s %(name)s: %(message)s")

    click.echo(f"Parsing {doc_path} (format: {fmt})...")
    result = _parse_doc(doc_path, fmt, options)
    click.echo(f"Found {len(result.apis)} operations and {len(result.schemas)} schemas.")

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(result.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    click.echo(f"Output saved to {output}")


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output TypeScript file.")
@_common_options
def emit(doc_path: Path, output: Path, fmt: str, config: Path | None, common_prefix: str | None,
         max_depth: int | None, naming_style: str | None, export_mode: str | None,
         log_level: str | None, no_validate: bool):
    """Emit TypeScript declarations for every schema in an API document."""
    options = _build_options(config, common_prefix, max_depth, naming_style, export_mode, log_level, no_validate)
    logging.basicConfig(level=_LOGGING_LEVELS[options.log_level], format="%(levelname)s %(name)s: %(message)s")

    click.echo(f"Parsing {doc_path} (format: {fmt})...")
    result = _parse_doc(doc_path, fmt, options)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text("\n\n".join(result.declarations.values()) + "\n", encoding="utf-8")
    click.echo(f"Wrote {len(result.declarations)} declarations to {output}")
