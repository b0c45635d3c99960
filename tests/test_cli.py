import json
from pathlib import Path

from click.testing import CliRunner

from api_codegen_universal.cli import main

FIXTURES = Path(__file__).parent / "fixtures"


class TestCliParse:
    def test_parse_openapi(self, tmp_path):
        output_file = tmp_path / "out" / "petstore.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "parse", str(FIXTURES / "petstore.yaml"),
            "-o", str(output_file),
        ])

        assert result.exit_code == 0, result.output
        assert "Found 7 operations" in result.output
        data = json.loads(output_file.read_text(encoding="utf-8"))
        assert set(data) == {"schemas", "declarations", "apis", "metadata"}
        assert data["metadata"]["baseUrl"] == "https://petstore.example.com/api/v1"
        api = [a for a in data["apis"] if a["operationId"] == "listPets"][0]
        assert api["parameters"]["query"] == {"kind": "ref", "ref": "ListPetsQueryParams"}

    def test_parse_detects_apifox(self, tmp_path):
        output_file = tmp_path / "shop.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "parse", str(FIXTURES / "apifox.json"),
            "-o", str(output_file),
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(output_file.read_text(encoding="utf-8"))
        assert data["metadata"]["warnings"]["validation"] == "skipped"
        assert data["schemas"]["ResultVO"]["isGeneric"] is True

    def test_common_prefix_option(self, tmp_path):
        output_file = tmp_path / "petstore.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "parse", str(FIXTURES / "petstore.yaml"),
            "-o", str(output_file),
            "--common-prefix", "/api/v1",
            "--max-depth", "1",
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(output_file.read_text(encoding="utf-8"))
        api = [a for a in data["apis"] if a["operationId"] == "getInventory"][0]
        assert api["category"]["segments"] == ["stores"]
        assert api["category"]["filePath"] == "api/stores/index.ts"

    def test_config_file(self, tmp_path):
        config = tmp_path / "codegen.yaml"
        config.write_text(
            "codeGeneration:\n"
            "  parameterNamingStyle: snake_case\n",
            encoding="utf-8",
        )
        output_file = tmp_path / "petstore.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "parse", str(FIXTURES / "petstore.yaml"),
            "-o", str(output_file),
            "--config", str(config),
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(output_file.read_text(encoding="utf-8"))
        assert "list_pets_query_params" in data["schemas"]

    def test_unknown_format_fails(self, tmp_path):
        doc = tmp_path / "swagger.yaml"
        doc.write_text("swagger: '2.0'\npaths: {}\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, ["parse", str(doc), "-o", str(tmp_path / "out.json")])

        assert result.exit_code != 0
        assert "Swagger 2.0" in result.output
        assert not (tmp_path / "out.json").exists()

    def test_invalid_document_fails(self, tmp_path):
        doc = tmp_path / "bad.yaml"
        doc.write_text("openapi: '2.0'\npaths: {}\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, [
            "parse", str(doc), "-o", str(tmp_path / "out.json"), "--format", "openapi",
        ])

        assert result.exit_code != 0
        assert "openapi: 3.x" in result.output

    def test_no_validate_flag(self, tmp_path):
        doc = tmp_path / "bad.yaml"
        doc.write_text("openapi: '2.0'\npaths: {}\n", encoding="utf-8")
        output_file = tmp_path / "out.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "parse", str(doc), "-o", str(output_file), "--format", "openapi", "--no-validate",
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(output_file.read_text(encoding="utf-8"))
        assert data["metadata"]["warnings"]["validation"] == "skipped"


class TestCliEmit:
    def test_emit_declarations(self, tmp_path):
        output_file = tmp_path / "types" / "petstore.d.ts"
        runner = CliRunner()
        result = runner.invoke(main, [
            "emit", str(FIXTURES / "petstore.yaml"),
            "-o", str(output_file),
        ])

        assert result.exit_code == 0, result.output
        content = output_file.read_text(encoding="utf-8")
        assert "export interface ApiResponse<T = any> {" in content
        assert "export enum PetStatus {" in content
        assert content.endswith("}\n")
        assert "Wrote" in result.output

    def test_emit_declare_mode(self, tmp_path):
        output_file = tmp_path / "shop.d.ts"
        runner = CliRunner()
        result = runner.invoke(main, [
            "emit", str(FIXTURES / "apifox.json"),
            "-o", str(output_file),
            "--export-mode", "declare",
        ])

        assert result.exit_code == 0, result.output
        content = output_file.read_text(encoding="utf-8")
        assert "declare type ResultVOUserVO = ResultVO<UserVO>;" in content
        assert "export " not in content
