"""JSON-LD schema generation and WordPress schema management."""

from indexwatch.modules.schema_manager.schema_generator import SchemaGenerator, render_schema_tag
from indexwatch.modules.schema_manager.wordpress_schema import WordPressSchemaManager

__all__ = ["SchemaGenerator", "WordPressSchemaManager", "render_schema_tag"]
