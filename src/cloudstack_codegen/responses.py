from __future__ import annotations

from dataclasses import dataclass, field

from .catalog import Operation, ResponseField
from .naming import attribute_name, capitalize, response_type_name, singularize, snake_case
from .policy import LB_RULE_VM_IP_KEY, LIST_WIRE_KEYS, Policy, policy_for
from .registry import TypeRegistry

SECONDARY_IP_FIELD = "secondaryip"
SECONDARY_IP_TYPE = "SecondaryIP"
VIRTUAL_MACHINE_TYPE = "VirtualMachine"
LB_RULE_VM_IP_ATTRIBUTE = "lb_rule_vm_id_ips"


@dataclass(frozen=True)
class FieldSpec:
    attribute: str
    wire: str
    annotation: str
    is_list: bool = False
    default: str | None = None

    def render(self) -> str:
        alias = "" if self.attribute == self.wire else f', alias="{self.wire}"'
        if self.is_list:
            return f"{self.attribute}: list[{self.annotation}] = Field(default_factory=list{alias})"
        annotation = self.annotation if self.annotation == "Any" or self.default else f"{self.annotation} | None"
        default = self.default or "None"
        if alias:
            return f"{self.attribute}: {annotation} = Field(default={default}{alias})"
        return f"{self.attribute}: {annotation} = {default}"


@dataclass(frozen=True)
class RecordSpec:
    name: str
    fields: tuple[FieldSpec, ...]
    coerce: bool = False
    references: frozenset[str] = frozenset()


@dataclass
class ResponsePlan:
    operation: Operation
    type_name: str
    # Post-order: every record appears after the records it references.
    records: list[RecordSpec] = field(default_factory=list)
    element: str | None = None
    list_attribute: str | None = None
    lookup_type: str | None = None

    @property
    def defined(self) -> list[str]:
        return [record.name for record in self.records]

    @property
    def references(self) -> set[str]:
        refs: set[str] = set()
        for record in self.records:
            refs.update(record.references)
        return refs


def is_list_operation(op: Operation) -> bool:
    return op.name.startswith("list") or Policy.LIST_WRAPPER in policy_for(op.name)


def list_names(op: Operation) -> tuple[str, str]:
    """Plural wrapper field and element type name of a list-style operation."""
    plural = capitalize(op.name.removeprefix("list"))
    return plural, singularize(plural)


def top_level_names(op: Operation) -> list[str]:
    names = [response_type_name(op.name)]
    if is_list_operation(op):
        names.append(list_names(op)[1])
    return names


def is_success_only(op: Operation) -> bool:
    names = {f.name for f in op.response}
    return "success" in names and "displaytext" in names


def _build_record(
    name: str,
    fields: tuple[ResponseField, ...],
    registry: TypeRegistry,
    out: list[RecordSpec],
    *,
    top_level_async: bool = False,
) -> None:
    specs: list[FieldSpec] = []
    references: set[str] = set()
    pending: list[tuple[str, tuple[ResponseField, ...]]] = []
    seen: set[str] = set()
    coerce = False

    for f in sorted(fields, key=lambda f: f.name):
        if not f.name or f.name in seen:
            continue
        seen.add(f.name)
        attribute = attribute_name(f.name)

        if f.name == SECONDARY_IP_FIELD:
            specs.append(FieldSpec(attribute, f.name, SECONDARY_IP_TYPE, is_list=True))
            references.add(SECONDARY_IP_TYPE)
        elif f.response:
            type_name, create = registry.unique_type_name(name, f.name)
            specs.append(FieldSpec(attribute, f.name, type_name, is_list=True))
            references.add(type_name)
            if create:
                pending.append((type_name, f.response))
        elif f.name == "success":
            # Text in synchronous envelopes, boolean in job results.
            specs.append(FieldSpec(attribute, f.name, "bool"))
            if not top_level_async:
                coerce = True
        elif f.name == "ostypeid":
            specs.append(FieldSpec(attribute, f.name, "str"))
            coerce = True
        else:
            ref = f.type_ref
            specs.append(FieldSpec(attribute, f.name, ref.annotation))
            references.update(ref.references)

    for type_name, children in pending:
        _build_record(type_name, children, registry, out)
    out.append(RecordSpec(name=name, fields=tuple(specs), coerce=coerce, references=frozenset(references)))


def build_response(op: Operation, registry: TypeRegistry) -> ResponsePlan:
    """Synthesize the response records of ``op``.

    Top-level names must already be reserved in ``registry``; nested records
    are named through it as they are discovered.
    """
    type_name = response_type_name(op.name)
    plan = ResponsePlan(operation=op, type_name=type_name)
    if not is_list_operation(op):
        _build_record(type_name, op.response, registry, plan.records, top_level_async=op.isasync)
        return plan

    plural, element = list_names(op)
    _build_record(element, op.response, registry, plan.records, top_level_async=op.isasync)

    list_attribute = attribute_name(snake_case(plural))
    wrapper = [FieldSpec("count", "count", "int", default="0")]
    if Policy.LB_RULE_INSTANCES in policy_for(op.name):
        wrapper.append(FieldSpec(LB_RULE_VM_IP_ATTRIBUTE, LB_RULE_VM_IP_KEY, element, is_list=True))
        wrapper.append(FieldSpec(list_attribute, element.lower(), VIRTUAL_MACHINE_TYPE, is_list=True))
        references = {element, VIRTUAL_MACHINE_TYPE}
        plan.lookup_type = VIRTUAL_MACHINE_TYPE
    else:
        wire = LIST_WIRE_KEYS.get(op.name, element.lower())
        wrapper.append(FieldSpec(list_attribute, wire, element, is_list=True))
        references = {element}
        plan.lookup_type = element

    plan.records.append(RecordSpec(name=type_name, fields=tuple(wrapper), references=frozenset(references)))
    plan.element = element
    plan.list_attribute = list_attribute
    return plan


def render_record(record: RecordSpec) -> list[str]:
    lines = [f"class {record.name}(ResponseModel):"]
    if not record.fields and not record.coerce:
        lines.append("    pass")
    for spec in record.fields:
        lines.append(f"    {spec.render()}")
    if record.coerce:
        if record.fields:
            lines.append("")
        lines.extend(
            [
                '    @model_validator(mode="before")',
                "    @classmethod",
                "    def normalize_legacy_fields(cls, data: Any) -> Any:",
                "        return coerce_legacy_fields(data)",
            ]
        )
    lines.extend(["", ""])
    return lines
