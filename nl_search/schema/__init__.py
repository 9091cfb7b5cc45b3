"""Schema introspection and type mapping."""

from nl_search.schema.type_mappings import TypeMapper
from nl_search.schema.introspector import SchemaIntrospector, describe_fields

__all__ = ["TypeMapper", "SchemaIntrospector", "describe_fields"]
