from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Kind(Enum):
    BOOLEAN = "boolean"
    INTEGER = "integer"
    LONG = "long"
    FLOAT = "float"
    STRING = "string"
    LIST = "list"
    MAP = "map"
    SET = "set"
    RAW = "responseobject"
    USER_VM = "uservmresponse"
    OUT_OF_BAND = "outofbandmanagementresponse"
    UNKNOWN = "unknown"


_TAGS: dict[str, Kind] = {
    "boolean": Kind.BOOLEAN,
    "short": Kind.INTEGER,
    "int": Kind.INTEGER,
    "integer": Kind.INTEGER,
    "long": Kind.LONG,
    "float": Kind.FLOAT,
    "string": Kind.STRING,
    "uuid": Kind.STRING,
    "list": Kind.LIST,
    "map": Kind.MAP,
    "set": Kind.SET,
    "responseobject": Kind.RAW,
    # Platform anomalies: response fields typed by the name of another response.
    "uservmresponse": Kind.USER_VM,
    "outofbandmanagementresponse": Kind.OUT_OF_BAND,
}

_ANNOTATIONS: dict[Kind, str] = {
    Kind.BOOLEAN: "bool",
    Kind.INTEGER: "int",
    Kind.LONG: "int",
    Kind.FLOAT: "float",
    Kind.STRING: "str",
    Kind.LIST: "list[str]",
    Kind.MAP: "dict[str, str]",
    Kind.SET: "list[Any]",
    Kind.RAW: "Any",
    Kind.USER_VM: "VirtualMachine",
    Kind.OUT_OF_BAND: "OutOfBandManagementResponse",
    Kind.UNKNOWN: "str",
}

_REFERENCES: dict[Kind, tuple[str, ...]] = {
    Kind.USER_VM: ("VirtualMachine",),
    Kind.OUT_OF_BAND: ("OutOfBandManagementResponse",),
}


@dataclass(frozen=True)
class TypeRef:
    kind: Kind
    tag: str

    @property
    def annotation(self) -> str:
        return _ANNOTATIONS[self.kind]

    @property
    def references(self) -> tuple[str, ...]:
        return _REFERENCES.get(self.kind, ())

    @property
    def is_string(self) -> bool:
        # Unknown tags are carried as text, so they count as strings too.
        return self.kind in (Kind.STRING, Kind.UNKNOWN)


def map_type(tag: str) -> TypeRef:
    return TypeRef(kind=_TAGS.get(tag, Kind.UNKNOWN), tag=tag)
