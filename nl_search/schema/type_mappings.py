"""
Type mapping utilities for converting backend field types to grammar data types.
"""

from typing import Dict


class TypeMapper:
    """Maps backend-specific field types to the data types shown in prompts."""

    NUMERIC_TYPES = {"int32", "int64", "float"}

    # Elasticsearch-specific type mappings
    ELASTICSEARCH_TYPE_MAP = {
        "text": "string",
        "keyword": "string",
        "constant_keyword": "string",
        "wildcard": "string",
        "match_only_text": "string",
        "integer": "int32",
        "short": "int32",
        "byte": "int32",
        "long": "int64",
        "unsigned_long": "int64",
        "double": "float",
        "float": "float",
        "half_float": "float",
        "scaled_float": "float",
        "boolean": "bool",
        "date": "date",
        "date_nanos": "date",
        "geo_point": "geopoint",
    }

    # Types that cannot appear in a sort expression
    UNSORTABLE_ELASTICSEARCH_TYPES = {"text", "match_only_text", "geo_point"}

    @classmethod
    def normalize_type(cls, db_type: str, source_db: str = "elasticsearch", array: bool = False) -> str:
        """
        Normalize backend type to a grammar data type.

        Args:
            db_type: Backend-specific type string
            source_db: Source backend
            array: Whether the field holds multiple values

        Returns:
            Data type string (string, int32, int64, float, bool, date, ...),
            suffixed with "[]" for array fields
        """
        type_map = cls._get_type_map(source_db)
        normalized = type_map.get(db_type.lower(), "unknown")
        return f"{normalized}[]" if array else normalized

    @classmethod
    def is_numeric(cls, data_type: str) -> bool:
        return data_type.rstrip("[]") in cls.NUMERIC_TYPES

    @classmethod
    def is_sortable(cls, db_type: str, source_db: str = "elasticsearch") -> bool:
        if source_db == "elasticsearch":
            return db_type.lower() not in cls.UNSORTABLE_ELASTICSEARCH_TYPES
        return True

    @classmethod
    def _get_type_map(cls, source_db: str) -> Dict[str, str]:
        """Get the appropriate type map for a backend."""
        if source_db == "elasticsearch":
            return cls.ELASTICSEARCH_TYPE_MAP
        raise ValueError(f"Unsupported source backend: {source_db}")
