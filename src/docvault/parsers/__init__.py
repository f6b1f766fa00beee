"""Parser implementations."""

from .json_parser import DEFAULT_FIELDS, JsonRecordParser

__all__ = ["DEFAULT_FIELDS", "JsonRecordParser"]
