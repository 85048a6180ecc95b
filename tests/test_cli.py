from __future__ import annotations

import contextlib
import io
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from _support import CATALOG, LAYOUT, write_catalog

from cloudstack_codegen.cli import main  # noqa: E402
from cloudstack_codegen.errors import FormatError  # noqa: E402
from cloudstack_codegen.formatting import format_output  # noqa: E402
from cloudstack_codegen.orchestrator import GeneratorOptions, generate  # noqa: E402


def _layout_yaml(directory: Path, layout: dict[str, list[str]]) -> Path:
    path = directory / "layout.yaml"
    lines = []
    for service, apis in layout.items():
        lines.append(f"{service}:")
        lines.extend(f"  - {api}" for api in apis)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def _run(argv: list[str]) -> tuple[int, str, str]:
    out, err = io.StringIO(), io.StringIO()
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        code = main(argv)
    return code, out.getvalue(), err.getvalue()


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.api = write_catalog(self.root, CATALOG)
        self.output = self.root / "cloudstack"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _argv(self, layout: dict[str, list[str]] = LAYOUT, *extra: str) -> list[str]:
        return [
            "--api",
            str(self.api),
            "--output",
            str(self.output),
            "--layout",
            str(_layout_yaml(self.root, layout)),
            *extra,
        ]

    def test_successful_run(self) -> None:
        code, out, err = _run(self._argv(LAYOUT, "--no-format"))
        self.assertEqual(code, 0, err)
        self.assertIn("[codegen] ZoneService -> ", out)
        self.assertTrue((self.output / "zone_service.py").is_file())
        self.assertTrue((self.output / "runtime.py").is_file())

    def test_missing_catalog_is_fatal(self) -> None:
        code, _, err = _run(["--api", str(self.root / "missing.json"), "--output", str(self.output), "--no-format"])
        self.assertEqual(code, 1)
        self.assertIn("[codegen]", err)
        self.assertFalse(self.output.exists())

    def test_undecodable_catalog_is_fatal(self) -> None:
        self.api.write_bytes(b'{"count": 0, "api": [{"name": "\xff\xfe"}]}')
        code, _, err = _run(self._argv(LAYOUT, "--no-format"))
        self.assertEqual(code, 1)
        self.assertIn("[codegen] Invalid JSON", err)
        self.assertFalse(self.output.exists())

    def test_malformed_catalog_is_fatal(self) -> None:
        self.api.write_text('{"count": 0}', encoding="utf-8")
        code, _, err = _run(self._argv(LAYOUT, "--no-format"))
        self.assertEqual(code, 1)
        self.assertIn("'api' is a required property", err)

    def test_collected_errors_fail_the_run_but_output_is_written(self) -> None:
        layout = {**LAYOUT, "PodService": ["listPods", "createPod"]}
        code, _, err = _run(self._argv(layout, "--no-format"))
        self.assertEqual(code, 1)
        self.assertIn("2 API(s) failed to generate:", err)
        self.assertIn("- Could not find API details for: listPods", err)
        self.assertTrue((self.output / "zone_service.py").is_file())
        self.assertTrue((self.output / "pod_service.py").is_file())

    def test_formatter_failure_is_reported(self) -> None:
        with patch("cloudstack_codegen.orchestrator.format_output", side_effect=FormatError("boom")) as formatter:
            code, _, err = _run(self._argv())
        formatter.assert_called_once_with(self.output)
        self.assertEqual(code, 1)
        self.assertIn("1 API(s) failed to generate:", err)
        self.assertIn("- Formatter failed to format:\nboom", err)

    def test_formatter_runs_by_default(self) -> None:
        with patch("cloudstack_codegen.orchestrator.format_output") as formatter:
            code, _, err = _run(self._argv())
        self.assertEqual(code, 0, err)
        formatter.assert_called_once_with(self.output)


class TestGenerate(unittest.TestCase):
    def test_output_is_deterministic(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            api = write_catalog(root, CATALOG)
            outputs = []
            for name in ("first", "second"):
                out = root / name
                with contextlib.redirect_stdout(io.StringIO()):
                    errors = generate(GeneratorOptions(api=api, output=out, run_formatter=False), layout=LAYOUT)
                self.assertEqual(errors, [])
                outputs.append({p.name: p.read_text(encoding="utf-8") for p in sorted(out.glob("*.py"))})
        self.assertEqual(outputs[0], outputs[1])
        self.assertIn("zone_service.py", outputs[0])

    def test_generated_sources_compile(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            out = root / "pkg"
            with contextlib.redirect_stdout(io.StringIO()):
                generate(GeneratorOptions(api=write_catalog(root, CATALOG), output=out, run_formatter=False), layout=LAYOUT)
            for path in sorted(out.glob("*.py")):
                compile(path.read_text(encoding="utf-8"), str(path), "exec")

    def test_default_output_directory(self) -> None:
        options = GeneratorOptions(package="cs")
        self.assertEqual(options.output_dir, Path.cwd().parent / "cs")


class TestFormatOutput(unittest.TestCase):
    def test_runs_import_sort_then_format(self) -> None:
        done = subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr="")
        with patch("cloudstack_codegen.formatting.subprocess.run", return_value=done) as run:
            format_output(Path("/tmp/out"))
        commands = [call.args[0] for call in run.call_args_list]
        self.assertEqual(
            commands,
            [
                [sys.executable, "-m", "ruff", "check", "--isolated", "--fix", "--select", "I", "--quiet", "/tmp/out"],
                [sys.executable, "-m", "ruff", "format", "--isolated", "--quiet", "/tmp/out"],
            ],
        )

    def test_nonzero_exit_raises(self) -> None:
        failed = subprocess.CompletedProcess(args=[], returncode=2, stdout="", stderr="error: bad syntax")
        with patch("cloudstack_codegen.formatting.subprocess.run", return_value=failed):
            with self.assertRaises(FormatError) as ctx:
                format_output(Path("/tmp/out"))
        self.assertEqual(ctx.exception.output, "error: bad syntax")

    def test_missing_executable_raises(self) -> None:
        with patch("cloudstack_codegen.formatting.subprocess.run", side_effect=FileNotFoundError("ruff")):
            with self.assertRaises(FormatError):
                format_output(Path("/tmp/out"))


if __name__ == "__main__":
    unittest.main()
