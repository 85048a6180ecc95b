"""Generator for a typed Python CloudStack client built from the listApis catalog."""

from .catalog import Operation, Param, ResponseField, load_catalog, parse_catalog
from .errors import ApiNotFoundError, CatalogParseError, CodegenError, FormatError, GenerateError, LayoutError
from .layout import LAYOUT, load_layout
from .orchestrator import GeneratorOptions, generate
from .registry import TypeRegistry
from .services import Service, group_services

__all__ = [
    "LAYOUT",
    "ApiNotFoundError",
    "CatalogParseError",
    "CodegenError",
    "FormatError",
    "GenerateError",
    "GeneratorOptions",
    "LayoutError",
    "Operation",
    "Param",
    "ResponseField",
    "Service",
    "TypeRegistry",
    "generate",
    "group_services",
    "load_catalog",
    "load_layout",
    "parse_catalog",
]
