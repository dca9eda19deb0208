import pytest
from sqlalchemy.dialects import mysql

from app.core.errors import BuildError, ValidationError
from app.sql.builders import DEFAULT_LIST_LIMIT, StatementBuilder
from app.sql.dialects import ANSIDialect, MySQLDialect, dialect_for
from app.sql.hooks import FieldHooks
from app.sql.statement import Identifier
from app.sql.values import DROP, WrappedValue

MYSQL = mysql.dialect()


@pytest.fixture
def builder() -> StatementBuilder:
    return StatementBuilder(MySQLDialect())


@pytest.fixture
def ansi_builder() -> StatementBuilder:
    return StatementBuilder(ANSIDialect("sqlite"))


class TestDialectFor:
    @pytest.mark.parametrize("name", ["mysql", "mariadb"])
    def test_mysql_family(self, name):
        assert isinstance(dialect_for(name), MySQLDialect)

    @pytest.mark.parametrize("name", ["sqlite", "postgresql"])
    def test_column_list_family(self, name):
        dialect = dialect_for(name)
        assert isinstance(dialect, ANSIDialect)
        assert dialect.name == name
        assert dialect.supports_delete_limit is False


class TestInsert:
    @pytest.mark.anyio
    async def test_mysql_insert_alternates_identifiers_and_values(self, builder):
        statement = await builder.insert("users", {"name": "Test_User", "age": 30, "city": "Oslo"})

        assert statement.template == "INSERT INTO ?? SET ?? = ?, ?? = ?, ?? = ?"
        assert statement.args == [
            Identifier("users"),
            Identifier("name"),
            "Test_User",
            Identifier("age"),
            30,
            Identifier("city"),
            "Oslo",
        ]

    @pytest.mark.anyio
    @pytest.mark.parametrize("count", [1, 2, 5])
    async def test_argument_count_is_one_plus_two_per_field(self, builder, count):
        fields = {f"col{i}": i for i in range(count)}

        statement = await builder.insert("t", fields)

        assert len(statement.args) == 1 + 2 * count
        assert statement.identifier_count == 1 + count
        assert statement.value_count == count

    @pytest.mark.anyio
    async def test_ansi_insert_uses_column_list(self, ansi_builder):
        statement = await ansi_builder.insert("users", {"name": "a", "age": 3})

        assert statement.template == "INSERT INTO ?? (??, ??) VALUES (?, ?)"
        assert statement.args == [Identifier("users"), Identifier("name"), Identifier("age"), "a", 3]

    @pytest.mark.anyio
    async def test_column_list_insert_puts_identifiers_before_values(self, ansi_builder):
        statement = await ansi_builder.insert("users", {"name": "a", "age": 3, "city": "Oslo"})

        identifiers, values = statement.args[:4], statement.args[4:]
        assert identifiers == [
            Identifier("users"),
            Identifier("name"),
            Identifier("age"),
            Identifier("city"),
        ]
        assert values == ["a", 3, "Oslo"]
        assert statement.template.index("VALUES") > statement.template.rindex("??")

    @pytest.mark.anyio
    async def test_empty_insert(self, builder, ansi_builder):
        assert (await builder.insert("t", {})).template == "INSERT INTO ?? () VALUES ()"
        assert (await ansi_builder.insert("t", {})).template == "INSERT INTO ?? DEFAULT VALUES"

    @pytest.mark.anyio
    async def test_renders_without_values_in_sql(self, builder):
        statement = await builder.insert("users", {"name": "Robert'); DROP TABLE users;--"})

        sql, params = statement.render(MYSQL)

        assert sql == "INSERT INTO `users` SET `name` = :p0"
        assert params == {"p0": "Robert'); DROP TABLE users;--"}


class TestUpdate:
    @pytest.mark.anyio
    async def test_set_and_where(self, builder):
        statement = await builder.update(
            "users", {"age": 31}, {"id": 1, "name": "ada", "city": "Oslo"}
        )

        assert statement.template == "UPDATE ?? SET ?? = ? WHERE ?? = ? AND ?? = ? AND ?? = ?"
        assert statement.template.count(" AND ") == 2
        assert statement.values == [31, 1, "ada", "Oslo"]

    @pytest.mark.anyio
    async def test_empty_set_is_rejected(self, builder):
        with pytest.raises(BuildError):
            await builder.update("users", {}, {"id": 1})

    @pytest.mark.anyio
    async def test_empty_where_is_rejected_by_default(self, builder):
        with pytest.raises(BuildError) as exc_info:
            await builder.update("users", {"age": 1}, {})

        assert exc_info.value.details == {"schema": "users"}

    @pytest.mark.anyio
    async def test_empty_where_with_opt_in_has_no_where_keyword(self, builder):
        statement = await builder.update("users", {"age": 1}, {}, allow_unconditional=True)

        assert statement.template == "UPDATE ?? SET ?? = ?"
        assert "WHERE" not in statement.template

    @pytest.mark.anyio
    async def test_null_value(self, builder):
        statement = await builder.update("users", {"email": None}, {"id": 1})

        assert statement.values == [None, 1]


class TestDelete:
    @pytest.mark.anyio
    async def test_delete_with_where(self, builder):
        statement = await builder.delete("users", {"id": 1, "name": "ada"})

        assert statement.template == "DELETE FROM ?? WHERE ?? = ? AND ?? = ?"
        assert statement.values == [1, "ada"]

    @pytest.mark.anyio
    async def test_delete_limit_on_mysql(self, builder):
        statement = await builder.delete("users", {"age": 3}, limit=5)

        assert statement.template == "DELETE FROM ?? WHERE ?? = ? LIMIT ?"
        assert statement.values == [3, 5]

    @pytest.mark.anyio
    async def test_delete_limit_unsupported_elsewhere(self, ansi_builder):
        with pytest.raises(BuildError):
            await ansi_builder.delete("users", {"age": 3}, limit=5)

    @pytest.mark.anyio
    async def test_empty_where_is_rejected_by_default(self, builder):
        with pytest.raises(BuildError):
            await builder.delete("users", {})

    @pytest.mark.anyio
    async def test_missing_where_with_opt_in(self, builder):
        statement = await builder.delete("users", None, allow_unconditional=True)

        assert statement.template == "DELETE FROM ??"
        assert statement.args == [Identifier("users")]

    @pytest.mark.anyio
    @pytest.mark.parametrize("limit", [0, -1, True, "5"])
    async def test_invalid_limit(self, builder, limit):
        with pytest.raises(ValidationError):
            await builder.delete("users", {"id": 1}, limit=limit)


class TestSelect:
    @pytest.mark.anyio
    async def test_default_limit(self, builder):
        statement = await builder.select("users")

        assert DEFAULT_LIST_LIMIT == 20
        assert statement.template == "SELECT * FROM ?? LIMIT ?"
        assert statement.values == [20]

    @pytest.mark.anyio
    async def test_where_limit_offset(self, builder):
        statement = await builder.select("users", {"age": 30}, offset=40, limit=10)

        assert statement.template == "SELECT * FROM ?? WHERE ?? = ? LIMIT ? OFFSET ?"
        assert statement.values == [30, 10, 40]

    @pytest.mark.anyio
    async def test_offset_omitted_by_default(self, builder):
        statement = await builder.select("users", {"age": 30})

        assert "OFFSET" not in statement.template

    @pytest.mark.anyio
    async def test_no_limit(self, builder):
        statement = await builder.select("users", limit=None)

        assert statement.template == "SELECT * FROM ??"

    @pytest.mark.anyio
    async def test_offset_requires_limit(self, builder):
        with pytest.raises(ValidationError):
            await builder.select("users", offset=5, limit=None)

    @pytest.mark.anyio
    async def test_negative_offset(self, builder):
        with pytest.raises(ValidationError):
            await builder.select("users", offset=-1)

    @pytest.mark.anyio
    async def test_zero_limit(self, builder):
        with pytest.raises(ValidationError):
            await builder.select("users", limit=0)


class TestHooksInBuilders:
    @pytest.mark.anyio
    async def test_dropped_field_is_absent(self):
        def insert_field(schema, key, value):
            return DROP if key == "password" else value

        builder = StatementBuilder(MySQLDialect(), FieldHooks(insert_field=insert_field))
        statement = await builder.insert("users", {"name": "a", "password": "secret"})

        assert statement.template == "INSERT INTO ?? SET ?? = ?"
        assert Identifier("password") not in statement.args
        assert "secret" not in statement.args

    @pytest.mark.anyio
    async def test_all_set_fields_dropped(self):
        builder = StatementBuilder(
            MySQLDialect(), FieldHooks(update_field=lambda schema, key, value: DROP)
        )

        with pytest.raises(BuildError):
            await builder.update("users", {"age": 1}, {"id": 1})

    @pytest.mark.anyio
    async def test_dropping_every_where_field_is_unconditional(self):
        builder = StatementBuilder(
            MySQLDialect(), FieldHooks(remove_where_field=lambda schema, key, value: DROP)
        )

        with pytest.raises(BuildError):
            await builder.delete("users", {"id": 1})

    @pytest.mark.anyio
    async def test_wrapped_value_surrounds_placeholder(self):
        def list_where_field(schema, key, value):
            if key == "created":
                return WrappedValue(value, before="FROM_UNIXTIME(", after=")")
            return value

        builder = StatementBuilder(MySQLDialect(), FieldHooks(list_where_field=list_where_field))
        statement = await builder.select("events", {"created": 1700000000, "kind": "x"})

        assert statement.template == (
            "SELECT * FROM ?? WHERE ?? = FROM_UNIXTIME(?) AND ?? = ? LIMIT ?"
        )
        sql, params = statement.render(MYSQL)
        assert sql == (
            "SELECT * FROM `events` WHERE `created` = FROM_UNIXTIME(:p0) "
            "AND `kind` = :p1 LIMIT :p2"
        )
        assert params == {"p0": 1700000000, "p1": "x", "p2": 20}

    @pytest.mark.anyio
    async def test_question_mark_in_wrapped_fragment_is_literal(self):
        def list_where_field(schema, key, value):
            return WrappedValue(value, before="COALESCE(", after=", '?')")

        builder = StatementBuilder(MySQLDialect(), FieldHooks(list_where_field=list_where_field))
        statement = await builder.select("t", {"a": 1})

        sql, params = statement.render(MYSQL)
        assert sql == "SELECT * FROM `t` WHERE `a` = COALESCE(:p0, '?') LIMIT :p1"
        assert params == {"p0": 1, "p1": 20}

    @pytest.mark.anyio
    async def test_async_hook_is_awaited(self):
        async def update_field(schema, key, value):
            return value.upper()

        builder = StatementBuilder(MySQLDialect(), FieldHooks(update_field=update_field))
        statement = await builder.update("users", {"name": "ada"}, {"id": 1})

        assert statement.values == ["ADA", 1]

    @pytest.mark.anyio
    async def test_hook_receives_schema_and_key(self):
        seen = []

        def update_where_field(schema, key, value):
            seen.append((schema, key, value))
            return value

        builder = StatementBuilder(
            MySQLDialect(), FieldHooks(update_where_field=update_where_field)
        )
        await builder.update("users", {"age": 2}, {"id": 7})

        assert seen == [("users", "id", 7)]
