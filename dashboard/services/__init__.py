"""
Dashboard business logic services.
"""
from .export import (
    build_export_payload,
    build_normalized_line_items,
    format_money,
    render_purchase,
    DEFAULT_PRINT_TEXT_TEMPLATE,
    DEFAULT_PRINT_HTML_TEMPLATE,
)

__all__ = [
    "build_export_payload",
    "build_normalized_line_items",
    "format_money",
    "render_purchase",
    "DEFAULT_PRINT_TEXT_TEMPLATE",
    "DEFAULT_PRINT_HTML_TEMPLATE",
]
