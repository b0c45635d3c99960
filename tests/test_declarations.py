from api_codegen_universal.generator.declarations import DeclarationEmitter
from api_codegen_universal.parser.base import PropertyDefinition, SchemaDefinition


def _pet() -> SchemaDefinition:
    return SchemaDefinition(
        name="Pet",
        kind="object",
        description="A pet",
        properties={
            "id": PropertyDefinition(name="id", type="number", required=True, description="Identifier", format="int64"),
            "owner_info": PropertyDefinition(name="owner_info", type="owner_profile", nullable=True),
            "display-name": PropertyDefinition(name="display-name", type="string"),
        },
        required=["id"],
    )


class TestInterfaces:
    def test_object_interface(self):
        text = DeclarationEmitter().emit(_pet())
        assert text == (
            "/**\n"
            " * A pet\n"
            " */\n"
            "export interface Pet {\n"
            "  /**\n"
            "   * Identifier\n"
            "   * @format int64\n"
            "   */\n"
            "  id: number;\n"
            "  owner_info?: OwnerProfile | null;\n"
            '  "display-name"?: string;\n'
            "}"
        )

    def test_declare_mode(self):
        text = DeclarationEmitter(export_mode="declare").emit(SchemaDefinition(name="Empty", kind="object"))
        assert text == "declare interface Empty {}"

    def test_extends(self):
        schema = SchemaDefinition(
            name="Dog",
            kind="object",
            extends=["animal_base"],
            properties={"bark": PropertyDefinition(name="bark", type="boolean", required=True)},
        )
        assert DeclarationEmitter().emit(schema).splitlines()[0] == "export interface Dog extends AnimalBase {"

    def test_generic_interface(self):
        schema = SchemaDefinition(
            name="ResultVO",
            kind="generic",
            is_generic=True,
            generic_param="T",
            properties={
                "code": PropertyDefinition(name="code", type="number"),
                "data": PropertyDefinition(name="data", type="T", nullable=True, is_type_parameter=True),
            },
        )
        assert DeclarationEmitter().emit(schema) == (
            "export interface ResultVO<T = any> {\n"
            "  code?: number;\n"
            "  data?: T | null;\n"
            "}"
        )


class TestAliases:
    def test_instance_alias(self):
        base = SchemaDefinition(name="ResultVO", kind="generic", is_generic=True, generic_param="T")
        instance = SchemaDefinition(name="ResultVO_UserVO", kind="object", base_type="ResultVO", generic_param="UserVO")
        emitted = DeclarationEmitter().emit_all({"ResultVO": base, "ResultVO_UserVO": instance})
        assert emitted["ResultVO_UserVO"] == "export type ResultVOUserVO = ResultVO<UserVO>;"

    def test_instance_without_generic_base_is_interface(self):
        instance = SchemaDefinition(name="Result_User", kind="object", base_type="Result", generic_param="User")
        assert DeclarationEmitter().emit(instance) == "export interface ResultUser {}"

    def test_type_alias_renames_references(self):
        schema = SchemaDefinition(name="pet_list", kind="array", type_text="pet_item[]")
        assert DeclarationEmitter().emit(schema) == "export type PetList = PetItem[];"

    def test_rename_skips_literals_keys_and_builtins(self):
        emitter = DeclarationEmitter(naming_style="snake_case")
        text = emitter.rename_types('{ userName?: UserProfile; kind: "BigDog" } | Record<string, OrderItem>')
        assert text == '{ userName?: user_profile; kind: "BigDog" } | Record<string, order_item>'


class TestEnums:
    def test_string_enum(self):
        schema = SchemaDefinition(name="PetStatus", kind="enum", enum_values=["available", "on-hold"])
        assert DeclarationEmitter().emit(schema) == (
            "export enum PetStatus {\n"
            '  available = "available",\n'
            '  "on-hold" = "on-hold",\n'
            "}"
        )

    def test_numeric_enum(self):
        schema = SchemaDefinition(name="Level", kind="enum", enum_values=[1, 2])
        assert DeclarationEmitter().emit(schema) == "export enum Level {\n  Value1 = 1,\n  Value2 = 2,\n}"

    def test_boolean_enum_becomes_alias(self):
        schema = SchemaDefinition(name="Flag", kind="enum", enum_values=[True], type_text="true")
        assert DeclarationEmitter().emit(schema) == "export type Flag = true;"


class TestDeclaredNames:
    def test_colliding_names_get_suffix(self):
        schemas = {
            "user_dto": SchemaDefinition(name="user_dto", kind="object"),
            "UserDto": SchemaDefinition(name="UserDto", kind="object"),
            "Holder": SchemaDefinition(
                name="Holder",
                kind="object",
                properties={
                    "a": PropertyDefinition(name="a", type="user_dto"),
                    "b": PropertyDefinition(name="b", type="UserDto"),
                },
            ),
        }
        emitted = DeclarationEmitter().emit_all(schemas)
        assert emitted["UserDto"] == "export interface UserDto {}"
        assert emitted["user_dto"] == "export interface UserDto2 {}"
        assert emitted["Holder"] == "export interface Holder {\n  a?: UserDto2;\n  b?: UserDto;\n}"

    def test_schema_named_t_follows_naming_style(self):
        schemas = {
            "T": SchemaDefinition(name="T", kind="object"),
            "Box": SchemaDefinition(
                name="Box",
                kind="generic",
                is_generic=True,
                generic_param="T",
                properties={
                    "value": PropertyDefinition(name="value", type="T", is_type_parameter=True),
                    "tag": PropertyDefinition(name="tag", type="T"),
                },
            ),
        }
        emitted = DeclarationEmitter(naming_style="snake_case").emit_all(schemas)
        assert emitted["T"] == "export interface t {}"
        assert emitted["Box"] == "export interface box<T = any> {\n  value?: T;\n  tag?: t;\n}"

    def test_kebab_case_emits_valid_identifiers(self):
        schema = SchemaDefinition(
            name="ResultVO_User",
            kind="object",
            properties={"owner": PropertyDefinition(name="owner", type="UserProfile")},
        )
        emitted = DeclarationEmitter(naming_style="kebab-case").emit_all({"ResultVO_User": schema})
        assert emitted["ResultVO_User"] == "export interface result_vo_user {\n  owner?: user_profile;\n}"
