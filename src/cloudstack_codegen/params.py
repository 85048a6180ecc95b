from __future__ import annotations

import json

from .catalog import Operation, Param
from .naming import method_name, params_type_name, safe_ident, snake_case
from .policy import Policy, policy_for
from .responses import ResponsePlan, list_names
from .services import Service
from .typemap import Kind

# Map parameters whose entries carry named labels instead of key/value.
_MAP_LABELS: dict[str, tuple[str, str]] = {
    "serviceproviderlist": ("service", "provider"),
    "usersecuritygrouplist": ("account", "group"),
}

_COURTESY_NOTE = "Courtesy helper; in some cases it may not work as expected."


def _q(value: str) -> str:
    return json.dumps(value)


def distinct_params(op: Operation) -> list[Param]:
    seen: set[str] = set()
    out: list[Param] = []
    for param in op.params:
        if param.name in seen:
            continue
        seen.add(param.name)
        out.append(param)
    return out


def required_params(op: Operation) -> list[Param]:
    return sorted((p for p in distinct_params(op) if p.required), key=lambda p: p.name)


def arg_name(service: Service, param_name: str) -> str:
    if param_name == "type":
        return safe_ident(f"{service.attribute}_type")
    return safe_ident(param_name)


def setter_name(param_name: str) -> str:
    return f"set_{safe_ident(param_name)}"


def annotation(param: Param) -> str:
    ref = param.type_ref
    if ref.references:
        return "Any"
    return ref.annotation


def map_labels(op: Operation, param_name: str) -> tuple[str, str] | None:
    """Labels for indexed map entries; None means ``name[i].<key>=<value>``."""
    if Policy.DETAILS_KEY_VALUE in policy_for(op.name):
        return ("key", "value")
    if param_name == "details":
        return None
    return _MAP_LABELS.get(param_name, ("key", "value"))


def _encode(op: Operation, param: Param) -> str:
    key = _q(param.name)
    value = f"p[{key}]"
    kind = param.type_ref.kind
    if kind is Kind.BOOLEAN:
        return f"u[{key}] = format_bool({value})"
    if kind is Kind.LIST:
        return f'u[{key}] = ",".join({value})'
    if kind is Kind.SET:
        return f'u[{key}] = ",".join(str(item) for item in {value})'
    if kind is Kind.RAW:
        return f"u[{key}] = encode_raw({value})"
    if kind is Kind.MAP:
        labels = map_labels(op, param.name)
        if labels is None:
            return f"encode_map(u, {key}, {value})"
        return f"encode_map(u, {key}, {value}, {_q(labels[0])}, {_q(labels[1])})"
    return f"u[{key}] = str({value})"


def render_params_class(service: Service, op: Operation) -> list[str]:
    name = params_type_name(op.name)
    required = required_params(op)
    params = distinct_params(op)

    lines = [f"class {name}(BaseParams):", f'    """Parameters of the {op.name} call."""', ""]

    args = "".join(f", {arg_name(service, p.name)}: {annotation(p)}" for p in required)
    lines.append(f"    def __init__(self{args}) -> None:")
    lines.append("        super().__init__()")
    for p in required:
        lines.append(f"        self._p[{_q(p.name)}] = {arg_name(service, p.name)}")
    lines.append("")

    lines.append("    def to_query(self) -> dict[str, str]:")
    if not params:
        lines.append("        return {}")
    else:
        lines.append("        u: dict[str, str] = {}")
        lines.append("        p = self._p")
        for param in params:
            lines.append(f"        if {_q(param.name)} in p:")
            lines.append(f"            {_encode(op, param)}")
        lines.append("        return u")
    lines.append("")

    setters: set[str] = set()
    for param in params:
        setter = setter_name(param.name)
        if setter in setters:
            continue
        setters.add(setter)
        lines.extend(
            [
                f"    def {setter}(self, v: {annotation(param)}) -> {name}:",
                f"        self._p[{_q(param.name)}] = v",
                "        return self",
                "",
            ]
        )

    lines.append("")
    return lines


def render_params_factory(service: Service, op: Operation) -> list[str]:
    name = params_type_name(op.name)
    required = required_params(op)
    args = "".join(f", {arg_name(service, p.name)}: {annotation(p)}" for p in required)
    call = ", ".join(arg_name(service, p.name) for p in required)
    return [
        f"    def new_{method_name(op.name)}_params(self{args}) -> {name}:",
        f'        """Return a {name} with every required parameter set."""',
        f"        return {name}({call})",
        "",
    ]


def _lookup_param(op: Operation) -> str | None:
    found = None
    for param in op.params:
        if param.name == "keyword" and param.type_ref.is_string:
            found = "keyword"
        if param.name == "name" and param.type_ref.is_string:
            return "name"
    return found


def _has_id_param(op: Operation) -> bool:
    return any(p.name == "id" and p.type_ref.is_string for p in op.params)


def _has_id_and_name_field(op: Operation) -> bool:
    names = {f.name for f in op.response if f.type_ref.is_string}
    return "id" in names and "name" in names


def _extra_filters(op: Operation) -> list[str]:
    policy = policy_for(op.name)
    extras = []
    if Policy.ISO_FILTER in policy:
        extras.append("isofilter")
    if Policy.ZONE_FILTER in policy:
        extras.append("zoneid")
    return extras


def _helper_args(service: Service, op: Operation, first: str, *, extras: bool = True) -> list[tuple[str, str]]:
    """Argument list of one courtesy helper, with duplicate names dropped."""
    args = [(first, "str")]
    names = {first}
    for param in required_params(op):
        arg = arg_name(service, param.name)
        if arg in names:
            continue
        names.add(arg)
        args.append((arg, annotation(param)))
    if extras:
        for extra in _extra_filters(op):
            if extra in names:
                continue
            names.add(extra)
            args.append((extra, "str"))
    return args


def _declare(args: list[tuple[str, str]]) -> str:
    return "".join(f", {arg}: {ann}" for arg, ann in args) + ", *opts: OptionFunc"


def _forward(args: list[str]) -> str:
    return "".join(f"{arg}, " for arg in args) + "*opts"


def render_helpers(service: Service, op: Operation, plan: ResponsePlan) -> list[str]:
    """Courtesy id/name resolution helpers for a list-style operation."""
    if not op.name.startswith("list") or plan.list_attribute is None:
        return []

    _, element = list_names(op)
    singular = snake_case(element)
    params_type = params_type_name(op.name)
    construct = f"{params_type}({', '.join(arg_name(service, p.name) for p in required_params(op))})"
    call = method_name(op.name)
    items = plan.list_attribute
    recount = Policy.COUNT_CORRECTION in policy_for(op.name)
    has_id = _has_id_param(op)
    by_id_args = _helper_args(service, op, "id", extras=False)
    lines: list[str] = []

    lookup = _lookup_param(op)
    if lookup is not None and _has_id_and_name_field(op):
        if any(p.required and p.name == "id" for p in op.params):
            return []

        id_args = _helper_args(service, op, lookup)
        lines.extend(
            [
                f"    def get_{singular}_id(self{_declare(id_args)}) -> tuple[str, int]:",
                f'        """Resolve a {element} {lookup} to its id. {_COURTESY_NOTE}"""',
                f"        p = {construct}",
                f'        p._set("{lookup}", {lookup})',
            ]
        )
        for extra in _extra_filters(op):
            if (extra, "str") in id_args:
                lines.append(f'        p._set("{extra}", {extra})')
        lines.extend(["        self._cs.apply_options(p, opts)", f"        l = self.{call}(p)"])
        if recount:
            lines.append(f"        l.count = len(l.{items})")
        lines.extend(
            [
                "        if l.count == 0:",
                f'            raise NoMatchError(f"No match found for {{{lookup}}}: {{l!r}}", count=l.count)',
                "        if l.count == 1:",
                f"            return l.{items}[0].id, l.count",
                f"        for v in l.{items}:",
                f"            if v.name == {lookup}:",
                "                return v.id, l.count",
                f'        raise AmbiguousMatchError(f"Could not find an exact match for {{{lookup}}}: {{l!r}}", count=l.count)',
                "",
            ]
        )

        if has_id:
            name_args = [("name", "str"), *id_args[1:]]
            to_id = [arg for arg, _ in id_args[1:]]
            to_by_id = ["name" if arg == lookup else arg for arg, _ in by_id_args[1:]]
            lines.extend(
                [
                    f"    def get_{singular}_by_name(self{_declare(name_args)}) -> tuple[{plan.lookup_type}, int]:",
                    f'        """Fetch a {element} by name. {_COURTESY_NOTE}"""',
                    f"        id_, _ = self.get_{singular}_id(name, {_forward(to_id)})",
                    f"        return self.get_{singular}_by_id(id_, {_forward(to_by_id)})",
                    "",
                ]
            )

    if has_id:
        lines.extend(
            [
                f"    def get_{singular}_by_id(self{_declare(by_id_args)}) -> tuple[{plan.lookup_type}, int]:",
                f'        """Fetch a {element} by id. {_COURTESY_NOTE}"""',
                f"        p = {construct}",
                '        p._set("id", id)',
                "        self._cs.apply_options(p, opts)",
                "        try:",
                f"            l = self.{call}(p)",
                "        except CloudStackApiError as exc:",
                "            if INVALID_ID_MESSAGE.format(id) in str(exc):",
                '                raise NoMatchError(f"No match found for {id}: {exc}", count=0) from exc',
                "            raise",
            ]
        )
        if recount:
            lines.append(f"        l.count = len(l.{items})")
        lines.extend(
            [
                "        if l.count == 0:",
                '            raise NoMatchError(f"No match found for {id}: {l!r}", count=l.count)',
                "        if l.count == 1:",
                f"            return l.{items}[0], l.count",
                f'        raise AmbiguousMatchError(f"There is more than one result for {element} UUID: {{id}}!", count=l.count)',
                "",
            ]
        )
    return lines
