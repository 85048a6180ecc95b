from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from _support import api, catalog, field, param

from cloudstack_codegen.catalog import load_catalog, parse_catalog  # noqa: E402
from cloudstack_codegen.errors import CatalogParseError  # noqa: E402
from cloudstack_codegen.typemap import Kind, map_type  # noqa: E402


class TestTypeMap(unittest.TestCase):
    def test_known_tags(self) -> None:
        self.assertEqual(map_type("short").annotation, "int")
        self.assertEqual(map_type("uuid").annotation, "str")
        self.assertEqual(map_type("map").annotation, "dict[str, str]")
        self.assertEqual(map_type("responseobject").annotation, "Any")
        self.assertTrue(map_type("uuid").is_string)

    def test_response_typed_fields_reference_records(self) -> None:
        ref = map_type("uservmresponse")
        self.assertIs(ref.kind, Kind.USER_VM)
        self.assertEqual(ref.references, ("VirtualMachine",))

    def test_unknown_tag_is_text(self) -> None:
        ref = map_type("date")
        self.assertIs(ref.kind, Kind.UNKNOWN)
        self.assertEqual(ref.annotation, "str")
        self.assertTrue(ref.is_string)
        self.assertEqual(ref.references, ())


class TestCatalog(unittest.TestCase):
    def test_parse_builds_operations(self) -> None:
        apis = parse_catalog(
            catalog(
                api(
                    "listZones",
                    params=[param("id", "uuid"), param("name", required=True)],
                    response=[field("id"), field("tags", "list", [field("key")])],
                )
            )
        )
        op = apis["listZones"]
        self.assertFalse(op.isasync)
        self.assertEqual([p.name for p in op.params], ["id", "name"])
        self.assertTrue(op.params[1].required)
        self.assertEqual(op.response[1].response[0].name, "key")

    def test_parse_accepts_list_apis_envelope(self) -> None:
        document = {"listapisresponse": catalog(api("listZones", isasync=False))}
        self.assertIn("listZones", parse_catalog(document))

    def test_parse_tolerates_null_collections(self) -> None:
        apis = parse_catalog({"api": [{"name": "logout", "params": None, "response": None}]})
        self.assertEqual(apis["logout"].params, ())
        self.assertEqual(apis["logout"].response, ())

    def test_missing_api_key_is_rejected(self) -> None:
        with self.assertRaises(CatalogParseError) as ctx:
            parse_catalog({"count": 1})
        self.assertIn("'api' is a required property", str(ctx.exception))

    def test_errors_carry_json_paths(self) -> None:
        with self.assertRaises(CatalogParseError) as ctx:
            parse_catalog({"api": [{"name": "listZones", "params": "nope"}]})
        self.assertTrue(any(e.startswith("$.api[0].params") for e in ctx.exception.errors))

    def test_load_catalog_rejects_invalid_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "listApis.json"
            path.write_text("{not json", encoding="utf-8")
            with self.assertRaises(CatalogParseError) as ctx:
                load_catalog(path)
        self.assertIn("Invalid JSON", str(ctx.exception))

    def test_load_catalog_rejects_undecodable_bytes(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "listApis.json"
            path.write_bytes(b'{"count": 0, "api": [{"name": "\xff\xfe"}]}')
            with self.assertRaises(CatalogParseError) as ctx:
                load_catalog(path)
        self.assertIn("Invalid JSON", str(ctx.exception))

    def test_load_catalog_reads_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "listApis.json"
            path.write_text(json.dumps(catalog(api("listHosts"))), encoding="utf-8")
            self.assertEqual(list(load_catalog(path)), ["listHosts"])


if __name__ == "__main__":
    unittest.main()
