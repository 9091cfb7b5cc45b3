"""
Generate the instruction document sent to the model.

The document is a pure function of the field descriptors, the sort hints and
the user query: identical inputs render byte-identical text.
"""

from typing import Optional, Sequence

from nl_search.core.models import FieldDescriptor
from nl_search.query.grammar import MAX_SORT_FIELDS

DEFAULT_SORT_HINTS = (
    "Mileage-related language (efficient, economical, good on gas) -> sort by the mileage fields.",
    "Power-related language (powerful, fast, sporty) -> sort by the horsepower field.",
    "Recency language (latest, newest, recent) -> sort by the year field.",
)

_NO_VALUE = "-"


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


class PromptGenerator:
    """
    Renders the translation prompt.

    Combines the filter and sort grammars, the field table and the expected
    output shape into a single instruction document, followed by the verbatim
    user query.
    """

    def __init__(
        self,
        fields: Sequence[FieldDescriptor],
        sort_hints: Optional[Sequence[str]] = None,
    ):
        """
        Initialize prompt generator.

        Args:
            fields: Field descriptors, in the order they should be listed
            sort_hints: Advisory rules mapping qualitative wording to sort fields
        """
        self.fields = tuple(fields)
        self.sort_hints = tuple(DEFAULT_SORT_HINTS if sort_hints is None else sort_hints)

    def render_field_table(self) -> str:
        """Render one markdown table row per field."""
        lines = [
            "| Field | Type | Filterable | Sortable | Values | Description |",
            "|---|---|---|---|---|---|",
        ]
        for field in self.fields:
            if field.enum_values:
                values = ", ".join(field.enum_values)
                if field.enum_truncated:
                    values += ", ... (more values exist)"
            elif field.enum_truncated:
                values = "(too many values to list)"
            else:
                values = _NO_VALUE
            lines.append(
                "| {} | {} | {} | {} | {} | {} |".format(
                    _cell(field.name),
                    _cell(field.data_type),
                    _yes_no(field.filterable),
                    _yes_no(field.sortable),
                    _cell(values),
                    _cell(field.description or _NO_VALUE),
                )
            )
        return "\n".join(lines)

    def generate_system_prompt(self) -> str:
        """
        Generate the instruction part of the prompt.

        Returns:
            Grammar documentation, field table and output rules
        """
        hints = "\n".join(f"- {hint}" for hint in self.sort_hints) or "- (none)"
        return f"""### 1. Your Goal
You convert a user's search request into structured search parameters for a search engine.
Output a JSON object with the optional keys `query`, `filter_by` and `sort_by`. Leave a key out when it does not apply.

### 2. Available Fields
{self.render_field_table()}

Only fields marked Filterable=yes may appear in `filter_by`. Only fields marked Sortable=yes may appear in `sort_by`.
When a field lists values, use those values exactly as written.

### 3. `filter_by` Syntax
- Match a value: `field:value`
- Match any of several values of the same field: `field:[value1,value2,value3]`
- Numeric range (inclusive): `field:[min..max]`
- Comparison: `field:>value`, `field:<value`, `field:>=value`, `field:<=value`, exact match `field:=value`
- Negation: `field:!=value` or `field:!=[value1,value2]`
- Values containing parentheses must be wrapped in backticks: `model:`Civic (Hybrid)``. Never use quotes.
- Combine conditions with `&&` (AND).
- Use `||` (OR) only between DIFFERENT fields, with parentheses to group it against `&&`: `(make:Ford || body_style:SUV) && msrp:<40000`
- NEVER repeat the same field with `||`. Write `make:[BMW,Honda]`, not `make:BMW || make:Honda`.
- Numbers are plain digits: write `40000`, not `40K` or `$40,000`.

### 4. `sort_by` Syntax
- Comma separated `field:asc` or `field:desc` pairs, at most {MAX_SORT_FIELDS}: `year:desc,msrp:asc`
- When the request is qualitative rather than naming a field, use these hints:
{hints}

### 5. `query`
Put any remaining free-text search terms that are not covered by a filter in `query`. Leave it out when everything was turned into filters.

### 6. Examples
**User**: "Latest Ford under 40K$"
```json
{{"filter_by": "make:Ford && msrp:<40000", "sort_by": "year:desc"}}
```

**User**: "BMW or Honda with at least 300 hp"
```json
{{"filter_by": "make:[BMW,Honda] && engine_hp:>=300"}}
```

**User**: "cheapest convertible"
```json
{{"query": "convertible", "sort_by": "msrp:asc"}}
```"""

    def generate_prompt(self, user_query: str) -> str:
        """
        Generate the full instruction document for one request.

        Args:
            user_query: Raw user query, appended verbatim

        Returns:
            Prompt text
        """
        return f"""{self.generate_system_prompt()}

### 7. User Query
{user_query}"""
