from __future__ import annotations

import keyword
import re

_ACRONYM_PLURAL_RE = re.compile(r"([A-Z]{2,})s(?=[A-Z]|$)")
_ACRONYM_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_RE = re.compile(r"([a-z0-9])([A-Z])")

# Attribute names a generated pydantic record may not use verbatim.
_RESERVED_ATTRS = {
    "Any",
    "bool",
    "construct",
    "copy",
    "dict",
    "float",
    "from_orm",
    "int",
    "json",
    "list",
    "parse_file",
    "parse_obj",
    "parse_raw",
    "schema",
    "schema_json",
    "str",
    "update_forward_refs",
    "validate",
}


def capitalize(value: str) -> str:
    if value == "jobid":
        return "JobID"
    return value[:1].upper() + value[1:]


def uncapitalize(value: str) -> str:
    return value[:1].lower() + value[1:]


def singularize(value: str) -> str:
    if value.endswith("ies"):
        return value[:-3] + "y"
    if value.endswith("sses"):
        return value[:-2]
    if value.endswith("s"):
        return value[:-1]
    return value


def snake_case(value: str) -> str:
    value = _ACRONYM_PLURAL_RE.sub(lambda m: m.group(1) + "S", value)
    value = _ACRONYM_RE.sub(r"\1_\2", value)
    value = _CAMEL_RE.sub(r"\1_\2", value)
    return value.lower()


def safe_ident(value: str) -> str:
    value = re.sub(r"[^0-9A-Za-z_]", "_", value)
    value = re.sub(r"_+", "_", value).strip("_")
    if not value:
        value = "value"
    if value[0].isdigit():
        value = f"_{value}"
    if keyword.iskeyword(value):
        value += "_"
    return value


def attribute_name(wire_name: str) -> str:
    """Python attribute for a response field; the wire name stays the JSON alias."""
    value = safe_ident(wire_name)
    if value in _RESERVED_ATTRS or value.startswith("model_"):
        value += "_"
    return value


def method_name(operation: str) -> str:
    return safe_ident(snake_case(operation))


def params_type_name(operation: str) -> str:
    return capitalize(operation + "Params")


def response_type_name(operation: str) -> str:
    return capitalize(operation.removeprefix("configure") + "Response")


def docstring(text: str) -> str:
    text = " ".join(text.split())
    if not text:
        return ""
    text = text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if text.endswith('"'):
        text = text[:-1] + '\\"'
    return f'"""{text}"""'
