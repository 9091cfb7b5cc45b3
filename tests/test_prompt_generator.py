from nl_search.core.models import FieldDescriptor
from nl_search.query.prompt_generator import PromptGenerator


def test_rendering_is_byte_identical_for_identical_input(fields):
    first = PromptGenerator(fields).generate_prompt("Latest Ford under 40K$")
    second = PromptGenerator(tuple(fields)).generate_prompt("Latest Ford under 40K$")

    assert first == second


def test_user_query_is_appended_verbatim(fields):
    prompt = PromptGenerator(fields).generate_prompt("  Latest Ford | under 40K$ ")

    assert prompt.endswith("### 7. User Query\n  Latest Ford | under 40K$ ")


def test_field_table_has_one_row_per_field_in_order(fields):
    table = PromptGenerator(fields).render_field_table()
    rows = table.splitlines()[2:]

    assert len(rows) == len(fields)
    assert [row.split("|")[1].strip() for row in rows] == [f.name for f in fields]


def test_field_table_row_contents():
    fields = [
        FieldDescriptor(
            name="make",
            data_type="string",
            filterable=True,
            sortable=False,
            enum_values=("Ford", "BMW"),
            enum_truncated=True,
            description="Manufacturer | brand",
        ),
        FieldDescriptor(name="year", data_type="int32", filterable=True, sortable=True),
    ]
    table = PromptGenerator(fields).render_field_table()

    assert "| make | string | yes | no | Ford, BMW, ... (more values exist) | Manufacturer \\| brand |" in table
    assert "| year | int32 | yes | yes | - | - |" in table


def test_field_order_changes_the_prompt(fields):
    forward = PromptGenerator(fields).generate_prompt("q")
    backward = PromptGenerator(tuple(reversed(fields))).generate_prompt("q")

    assert forward != backward


def test_grammar_and_hints_are_documented(fields):
    prompt = PromptGenerator(fields).generate_system_prompt()

    assert "`field:[value1,value2,value3]`" in prompt
    assert "NEVER repeat the same field with `||`" in prompt
    assert "at most 3" in prompt
    assert "horsepower" in prompt


def test_custom_sort_hints(fields):
    prompt = PromptGenerator(fields, sort_hints=["Cheap -> msrp:asc"]).generate_system_prompt()

    assert "- Cheap -> msrp:asc" in prompt
    assert "horsepower field" not in prompt
