from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from .catalog import load_catalog
from .emitter import ServiceModule, plan_services
from .errors import CodegenError, GenerateError
from .formatting import format_output
from .layout import LAYOUT, load_layout
from .runtime import render_package_init, render_runtime
from .services import group_services


@dataclass(frozen=True)
class GeneratorOptions:
    api: Path = Path("listApis.json")
    output: Path | None = None
    package: str = "cloudstack"
    layout: Path | None = None
    run_formatter: bool = True

    @property
    def output_dir(self) -> Path:
        # Defaults to a sibling of the working directory named after the package.
        if self.output is not None:
            return self.output
        return Path.cwd().parent / self.package


def _write(path: Path, source: str) -> None:
    path.write_text(source, encoding="utf-8")


def _write_module(module: ServiceModule, output_dir: Path) -> None:
    target = output_dir / module.file_name
    _write(target, module.render())
    print(f"[codegen] {module.service.name} -> {target}")


def generate(options: GeneratorOptions, *, layout: Mapping[str, Sequence[str]] | None = None) -> list[CodegenError]:
    """Run one generation pass and return every non-fatal error collected.

    Catalog and layout problems are fatal and raised. Missing operations,
    per-service failures and formatter failures are collected instead, so the
    rest of the output is still written.
    """
    apis = load_catalog(options.api)
    if layout is None:
        layout = load_layout(options.layout) if options.layout is not None else LAYOUT

    services, errors = group_services(apis, layout)
    modules, plan_errors = plan_services(services)
    errors.extend(plan_errors)

    output_dir = options.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)
    _write(output_dir / "runtime.py", render_runtime())

    written: list[ServiceModule] = []
    for module in modules:
        try:
            _write_module(module, output_dir)
        except Exception as exc:
            errors.append(GenerateError(module.service.name, exc))
            continue
        written.append(module)

    triples = [(m.service.name, m.file_name.removesuffix(".py"), m.service.attribute) for m in written]
    _write(output_dir / "__init__.py", render_package_init(triples))

    if options.run_formatter:
        try:
            format_output(output_dir)
        except CodegenError as exc:
            errors.append(exc)
    return errors
