from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping, Sequence

from .catalog import Operation
from .errors import ApiNotFoundError, CodegenError
from .naming import snake_case

CUSTOM_SERVICE = "CustomService"


@dataclass
class Service:
    name: str
    operations: list[Operation] = field(default_factory=list)

    @property
    def short_name(self) -> str:
        return self.name.removesuffix("Service")

    @property
    def module_name(self) -> str:
        return snake_case(self.name)

    @property
    def attribute(self) -> str:
        return snake_case(self.short_name)


def group_services(
    apis: Mapping[str, Operation],
    layout: Mapping[str, Sequence[str]],
) -> tuple[list[Service], list[CodegenError]]:
    """Partition catalog operations into services following ``layout``.

    Operations named by the layout but missing from the catalog are reported
    one error each; grouping continues with the rest. The reserved custom
    service is always appended and the result is sorted by service name.
    """
    services: list[Service] = []
    errors: list[CodegenError] = []
    for name in sorted(layout):
        service = Service(name=name)
        for api in layout[name]:
            op = apis.get(api)
            if op is None:
                errors.append(ApiNotFoundError(api))
                continue
            # Parameters are handled in name order everywhere downstream.
            service.operations.append(replace(op, params=tuple(sorted(op.params, key=lambda p: p.name))))
        services.append(service)

    if CUSTOM_SERVICE not in layout:
        services.append(Service(name=CUSTOM_SERVICE))
    services.sort(key=lambda s: s.name)
    return services, errors
