from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from .errors import CatalogParseError
from .typemap import TypeRef, map_type

CATALOG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["api"],
    "properties": {
        "count": {"type": "integer"},
        "api": {"type": "array", "items": {"$ref": "#/$defs/api"}},
    },
    "$defs": {
        "api": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "description": {"type": ["string", "null"]},
                "isasync": {"type": "boolean"},
                "params": {"type": ["array", "null"], "items": {"$ref": "#/$defs/param"}},
                "response": {"type": ["array", "null"], "items": {"$ref": "#/$defs/response"}},
            },
        },
        "param": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string"},
                "description": {"type": ["string", "null"]},
                "type": {"type": ["string", "null"]},
                "required": {"type": "boolean"},
            },
        },
        "response": {
            "type": "object",
            "properties": {
                "name": {"type": ["string", "null"]},
                "description": {"type": ["string", "null"]},
                "type": {"type": ["string", "null"]},
                "response": {"type": ["array", "null"], "items": {"$ref": "#/$defs/response"}},
            },
        },
    },
}


@dataclass(frozen=True)
class Param:
    name: str
    type: str = ""
    required: bool = False
    description: str = ""

    @property
    def type_ref(self) -> TypeRef:
        return map_type(self.type)


@dataclass(frozen=True)
class ResponseField:
    name: str
    type: str = ""
    description: str = ""
    response: tuple[ResponseField, ...] = ()

    @property
    def type_ref(self) -> TypeRef:
        return map_type(self.type)


@dataclass(frozen=True)
class Operation:
    name: str
    description: str = ""
    isasync: bool = False
    params: tuple[Param, ...] = ()
    response: tuple[ResponseField, ...] = ()


def _json_path(err: object) -> str:
    path = getattr(err, "absolute_path", None)
    if not path:
        return "$"
    out = "$"
    for part in path:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}"
    return out


def _unwrap_envelope(document: Any) -> Any:
    # The raw listApis output is itself wrapped in a single-key envelope.
    if isinstance(document, dict) and "api" not in document and len(document) == 1:
        inner = next(iter(document.values()))
        if isinstance(inner, dict) and "api" in inner:
            return inner
    return document


def _response_field(raw: dict[str, Any]) -> ResponseField:
    children = raw.get("response") or []
    return ResponseField(
        name=raw.get("name") or "",
        type=raw.get("type") or "",
        description=raw.get("description") or "",
        response=tuple(_response_field(child) for child in children),
    )


def _operation(raw: dict[str, Any]) -> Operation:
    params = tuple(
        Param(
            name=p["name"],
            type=p.get("type") or "",
            required=bool(p.get("required")),
            description=p.get("description") or "",
        )
        for p in raw.get("params") or []
    )
    return Operation(
        name=raw["name"],
        description=raw.get("description") or "",
        isasync=bool(raw.get("isasync")),
        params=params,
        response=tuple(_response_field(r) for r in raw.get("response") or []),
    )


def parse_catalog(document: Any) -> dict[str, Operation]:
    document = _unwrap_envelope(document)
    validator = Draft202012Validator(CATALOG_SCHEMA)
    errors = sorted(validator.iter_errors(document), key=lambda e: list(getattr(e, "absolute_path", [])))
    if errors:
        raise CatalogParseError(
            "Catalog document is not well-formed",
            errors=[f"{_json_path(e)}: {e.message}" for e in errors],
        )

    apis: dict[str, Operation] = {}
    for raw in document["api"]:
        op = _operation(raw)
        apis[op.name] = op
    return apis


def load_catalog(path: Path) -> dict[str, Operation]:
    try:
        with path.open("r", encoding="utf-8") as file:
            document = json.load(file)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise CatalogParseError(f"Invalid JSON in {path}: {exc}") from exc
    return parse_catalog(document)
