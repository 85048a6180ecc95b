from __future__ import annotations

import re
from dataclasses import dataclass, field

from .catalog import Operation
from .errors import GenerateError
from .naming import docstring, method_name, params_type_name
from .params import render_helpers, render_params_class, render_params_factory
from .policy import COLLAPSE_KEYS, Policy, policy_for
from .registry import TypeRegistry
from .responses import SECONDARY_IP_TYPE, ResponsePlan, build_response, is_success_only, render_record, top_level_names
from .services import CUSTOM_SERVICE, Service

# Names the generated runtime module exports to service modules.
RUNTIME_EXPORTS = (
    "INVALID_ID_MESSAGE",
    "AmbiguousMatchError",
    "AsyncTimeoutError",
    "BaseClient",
    "BaseParams",
    "CloudStackApiError",
    "NoMatchError",
    "OptionFunc",
    "ResponseModel",
    "SecondaryIP",
    "coerce_legacy_fields",
    "collapse_single_rule",
    "convert_firewall_response",
    "encode_map",
    "encode_raw",
    "format_bool",
    "get_raw_value",
    "job_id",
    "merge_job_result",
)
RUNTIME_MODELS = frozenset({SECONDARY_IP_TYPE})
RESERVED_NAMES = ("BaseClient", "BaseParams", "CloudStackClient", "ResponseModel", SECONDARY_IP_TYPE)


def _render(lines: list[str]) -> str:
    return "\n".join(lines).rstrip() + "\n"


def _uses(body: str, name: str) -> bool:
    return re.search(rf"\b{re.escape(name)}\b", body) is not None


def _module_header(title: str, body: str) -> list[str]:
    lines = [f'"""{title}"""', "", "from __future__ import annotations", ""]
    if _uses(body, "Any") or _uses(body, "Mapping"):
        typing_names = [name for name in ("Any", "Mapping") if _uses(body, name)]
        lines.extend([f"from typing import {', '.join(typing_names)}", ""])
    pydantic_names = [name for name in ("Field", "model_validator") if _uses(body, name)]
    if pydantic_names:
        lines.extend([f"from pydantic import {', '.join(pydantic_names)}", ""])
    runtime_names = [name for name in RUNTIME_EXPORTS if _uses(body, name)]
    if runtime_names:
        lines.append("from .runtime import (")
        lines.extend(f"    {name}," for name in runtime_names)
        lines.extend([")", ""])
    lines.append("")
    return lines


def render_call(service: Service, op: Operation, plan: ResponsePlan) -> list[str]:
    policy = policy_for(op.name, service.name)
    type_name = plan.type_name
    lines = [f"    def {method_name(op.name)}(self, p: {params_type_name(op.name)}) -> {type_name}:"]
    doc = docstring(op.description)
    if doc:
        lines.append(f"        {doc}")

    request = "new_idempotent_request" if Policy.RETRY_IDEMPOTENT in policy else "new_request"
    lines.append(f'        resp = self._cs.{request}("{op.name}", p.to_query())')
    if Policy.NESTED_ENVELOPE in policy:
        lines.append("        resp = get_raw_value(resp)")

    if not op.isasync:
        if Policy.PORT_COERCION in policy:
            lines.append("        resp = convert_firewall_response(resp)")
        lines.extend([f"        return {type_name}.model_validate(resp)", ""])
        return lines

    lines.extend(
        [
            f"        r = {type_name}.model_validate(resp)",
            "        if not self._cs.async_jobs:",
            "            return r",
            "        try:",
            "            b = self._cs.get_async_job_result(job_id(resp), self._cs.async_timeout)",
            "        except AsyncTimeoutError as exc:",
            "            exc.response = r",
            "            raise",
        ]
    )
    if not is_success_only(op):
        lines.append("        b = get_raw_value(b)")
    if Policy.PORT_COERCION in policy:
        lines.append("        b = convert_firewall_response(b)")
    if Policy.COLLAPSE_SINGLE_RULE in policy:
        lines.append(f'        b = collapse_single_rule(b, "{COLLAPSE_KEYS[op.name]}")')
    lines.extend([f"        return {type_name}.model_validate(merge_job_result(resp, b))", ""])
    return lines


@dataclass
class ServiceModule:
    service: Service
    responses: list[ResponsePlan] = field(default_factory=list)

    @property
    def file_name(self) -> str:
        return f"{self.service.module_name}.py"

    @property
    def defined(self) -> set[str]:
        names = {self.service.name}
        for plan in self.responses:
            names.add(params_type_name(plan.operation.name))
            names.update(plan.defined)
        return names

    @property
    def references(self) -> set[str]:
        refs: set[str] = set()
        for plan in self.responses:
            refs.update(plan.references)
        return refs

    def render(self) -> str:
        if self.service.name == CUSTOM_SERVICE:
            return render_custom_service()

        service = self.service
        body: list[str] = []
        exported: list[str] = []
        for plan in self.responses:
            body.extend(render_params_class(service, plan.operation))
            exported.append(params_type_name(plan.operation.name))
            for record in plan.records:
                body.extend(render_record(record))
                exported.append(record.name)

        body.extend(
            [
                f"class {service.name}:",
                "    def __init__(self, cs: BaseClient) -> None:",
                "        self._cs = cs",
                "",
            ]
        )
        for plan in self.responses:
            op = plan.operation
            body.extend(render_params_factory(service, op))
            body.extend(render_helpers(service, op, plan))
            body.extend(render_call(service, op, plan))
        exported.append(service.name)

        body.extend(["", "__all__ = ["])
        body.extend(f'    "{name}",' for name in sorted(exported))
        body.append("]")

        header = _module_header(f"CloudStack {service.name} bindings.", "\n".join(body))
        return _render(header + body)


def render_custom_service() -> str:
    body = [
        "class CustomServiceParams(BaseParams):",
        '    """Free-form parameters for operations the catalog does not describe."""',
        "",
        "    def set_param(self, name: str, v: Any) -> CustomServiceParams:",
        "        self._p[name] = v",
        "        return self",
        "",
        "    def to_query(self) -> dict[str, str]:",
        "        u: dict[str, str] = {}",
        "        for name, value in self._p.items():",
        "            if isinstance(value, bool):",
        "                u[name] = format_bool(value)",
        "            elif isinstance(value, (int, float, str)):",
        "                u[name] = str(value)",
        "            elif isinstance(value, list):",
        '                u[name] = ", ".join(str(item) for item in value)',
        "            elif isinstance(value, Mapping):",
        "                encode_map(u, name, value)",
        "            else:",
        '                raise TypeError(f"Unsupported value for parameter {name}: {type(value).__name__}")',
        "        return u",
        "",
        "",
        "class CustomService:",
        "    def __init__(self, cs: BaseClient) -> None:",
        "        self._cs = cs",
        "",
        "    def new_custom_service_params(self) -> CustomServiceParams:",
        "        return CustomServiceParams()",
        "",
        "    def custom_request(self, api: str, p: CustomServiceParams, result_type: type[ResponseModel] | None = None) -> Any:",
        '        """Call ``api`` directly; decode into ``result_type`` when one is given."""',
        "        resp = self._cs.new_request(api, p.to_query())",
        "        if result_type is None:",
        "            return resp",
        "        return result_type.model_validate(resp)",
        "",
        "",
        "__all__ = [",
        '    "CustomService",',
        '    "CustomServiceParams",',
        "]",
    ]
    header = _module_header(f"CloudStack {CUSTOM_SERVICE} bindings.", "\n".join(body))
    return _render(header + body)


def _reserve_top_level(service: Service, registry: TypeRegistry) -> None:
    for op in service.operations:
        for name in (params_type_name(op.name), *top_level_names(op)):
            if not registry.reserve(name):
                raise GenerateError(service.name, ValueError(f"type name {name} is generated more than once"))


def _build_modules(services: list[Service]) -> tuple[list[ServiceModule], dict[str, GenerateError]]:
    registry = TypeRegistry(reserved=[*RESERVED_NAMES, *(s.name for s in services)])
    failures: dict[str, GenerateError] = {}
    for service in services:
        try:
            _reserve_top_level(service, registry)
        except GenerateError as exc:
            failures[service.name] = exc

    modules: list[ServiceModule] = []
    for service in services:
        if service.name in failures:
            continue
        module = ServiceModule(service=service)
        try:
            for op in service.operations:
                module.responses.append(build_response(op, registry))
        except Exception as exc:
            failures[service.name] = GenerateError(service.name, exc)
            continue
        modules.append(module)
    return modules, failures


def plan_services(services: list[Service]) -> tuple[list[ServiceModule], list[GenerateError]]:
    """Assign every response type a canonical name and a home module.

    A service that cannot be generated is dropped and planning restarts on a
    fresh registry, so shared shapes are re-homed in a surviving service and
    no emitted module refers to a type nobody emits.
    """
    failed: dict[str, GenerateError] = {}
    while True:
        active = [s for s in services if s.name not in failed]
        modules, failures = _build_modules(active)
        if not failures:
            defined = set(RUNTIME_MODELS)
            for module in modules:
                defined.update(module.defined)
            for module in modules:
                missing = sorted(module.references - defined)
                if missing:
                    failures[module.service.name] = GenerateError(
                        module.service.name,
                        ValueError(f"response type(s) {', '.join(missing)} not generated by any service"),
                    )
        if not failures:
            order = {s.name: i for i, s in enumerate(services)}
            return modules, sorted(failed.values(), key=lambda e: order[e.service])
        failed.update(failures)
