from __future__ import annotations

import base64
import hashlib
import hmac
import unittest

import httpx
from _support import API_KEY, API_URL, SECRET, FakeClock, FakePlatform, GeneratedPackage, envelope, request_params


class TestGeneratedRuntime(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.pkg = GeneratedPackage()
        cls.rt = cls.pkg.runtime

    @classmethod
    def tearDownClass(cls) -> None:
        cls.pkg.close()

    def setUp(self) -> None:
        self.platform = FakePlatform()
        self.clock = FakeClock()

    def _client(self, **kwargs):
        return self.rt.BaseClient(
            API_URL,
            API_KEY,
            SECRET,
            http_client=self.platform.http_client(),
            clock=self.clock,
            sleep=self.clock.sleep,
            **kwargs,
        )

    def _assert_signed(self, request: httpx.Request) -> None:
        values = request_params(request)
        signature = values.pop("signature")
        self.assertEqual(signature, self.rt.sign(self.rt.encode_values(values), SECRET))

    def test_canonical_query_and_signature(self) -> None:
        values = {"response": "json", "name": "My Zone", "command": "listZones", "apiKey": "KEY"}
        query = self.rt.encode_values(values)
        self.assertEqual(query, "apiKey=KEY&command=listZones&name=My+Zone&response=json")

        canonical = b"apikey=key&command=listzones&name=my%20zone&response=json"
        expected = base64.b64encode(hmac.new(b"s3cret", canonical, hashlib.sha1).digest()).decode("ascii")
        self.assertEqual(self.rt.sign(query, "s3cret"), expected)

    def test_signature_ignores_insertion_order_but_not_values(self) -> None:
        a = {"command": "listZones", "name": "z", "apiKey": "KEY"}
        b = {"apiKey": "KEY", "name": "z", "command": "listZones"}
        sig_a = self.rt.sign(self.rt.encode_values(a), SECRET)
        self.assertEqual(sig_a, self.rt.sign(self.rt.encode_values(b), SECRET))
        self.assertNotEqual(sig_a, self.rt.sign(self.rt.encode_values({**a, "name": "y"}), SECRET))

    def test_get_request_is_signed(self) -> None:
        self.platform.on("listZones", {"count": 0})
        with self._client() as client:
            self.assertEqual(client.new_request("listZones", {"name": "a b/c"}), {"count": 0})
        request = self.platform.requests[0]
        self.assertEqual(request.method, "GET")
        values = request_params(request)
        self.assertEqual(values["apiKey"], API_KEY)
        self.assertEqual(values["response"], "json")
        self.assertEqual(values["name"], "a b/c")
        self._assert_signed(request)

    def test_post_apis_use_form_bodies_unless_get_only(self) -> None:
        self.platform.on("deployVirtualMachine", {"jobid": "j1"})
        client = self._client()
        client.new_request("deployVirtualMachine", {"zoneid": "z1"})
        request = self.platform.requests[-1]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), API_URL)
        self._assert_signed(request)

        get_only = self._client(http_get_only=True)
        get_only.new_request("deployVirtualMachine", {"zoneid": "z1"})
        self.assertEqual(self.platform.requests[-1].method, "GET")

    def test_error_envelope_raises_api_error(self) -> None:
        payload = {"errorcode": 431, "cserrorcode": 4350, "errortext": "Unable to find zone"}
        self.platform.on("listZones", payload, status_code=431)
        with self.assertRaises(self.rt.CloudStackApiError) as ctx:
            self._client().new_request("listZones", {})
        exc = ctx.exception
        self.assertEqual((exc.errorcode, exc.cserrorcode, exc.status_code), (431, 4350, 431))
        self.assertEqual(str(exc), "CloudStack API error 431 (CSExceptionErrorCode: 4350): Unable to find zone")

    def test_undecodable_bodies_raise_parse_errors(self) -> None:
        self.platform.on("listZones", lambda request: httpx.Response(200, text="<html>"))
        with self.assertRaises(self.rt.ResponseParseError):
            self._client().new_request("listZones", {})

        self.platform = FakePlatform()
        self.platform.on("listZones", {"unexpected": True}, status_code=500)
        with self.assertRaises(self.rt.ResponseParseError):
            self._client().new_request("listZones", {})

    def test_job_result_after_polling(self) -> None:
        self.platform.on(
            "queryAsyncJobResult",
            {"jobid": "j1", "jobstatus": 0},
            {"jobid": "j1", "jobstatus": 0},
            {"jobid": "j1", "jobstatus": 1, "jobresult": {"zone": {"id": "z1"}}},
        )
        result = self._client().get_async_job_result("j1", 60)
        self.assertEqual(result, {"zone": {"id": "z1"}})
        self.assertEqual(self.clock.sleeps, [1, 2])
        self.assertEqual(self.platform.params("queryAsyncJobResult")["jobid"], "j1")

    def test_job_timeout(self) -> None:
        self.platform.on("queryAsyncJobResult", {"jobid": "j1", "jobstatus": 0})
        with self.assertRaises(self.rt.AsyncTimeoutError) as ctx:
            self._client().get_async_job_result("j1", 10)
        self.assertEqual(self.clock.sleeps, [1, 2, 3, 4, 5])
        self.assertEqual(ctx.exception.jobid, "j1")
        self.assertIsNone(ctx.exception.response)

    def test_poll_interval_is_capped(self) -> None:
        self.platform.on("queryAsyncJobResult", {"jobid": "j1", "jobstatus": 0})
        with self.assertRaises(self.rt.AsyncTimeoutError):
            self._client().get_async_job_result("j1", 200)
        self.assertEqual(self.clock.sleeps[:15], list(range(1, 16)))
        self.assertEqual(max(self.clock.sleeps), self.rt.MAX_POLL_INTERVAL)

    def test_failed_jobs(self) -> None:
        self.platform.on("queryAsyncJobResult", {"jobstatus": 2, "jobresulttype": "text", "jobresult": "disk full"})
        with self.assertRaises(self.rt.AsyncJobError) as ctx:
            self._client().get_async_job_result("j1", 60)
        self.assertEqual(str(ctx.exception), "disk full")

        self.platform = FakePlatform()
        self.platform.on("queryAsyncJobResult", {"jobstatus": 2, "jobresult": {"errorcode": 530}})
        with self.assertRaises(self.rt.AsyncJobError) as ctx:
            self._client().get_async_job_result("j1", 60)
        self.assertTrue(str(ctx.exception).startswith("Undefined error: "))
        self.assertEqual(ctx.exception.jobid, "j1")

    def test_job_status_is_retried_on_transport_errors(self) -> None:
        attempts = []

        def flaky(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return envelope("queryAsyncJobResult", {"jobstatus": 1, "jobresult": {"ok": True}})

        self.platform.on("queryAsyncJobResult", flaky)
        self.assertEqual(self._client().get_async_job_result("j1", 60), {"ok": True})
        self.assertEqual(self.clock.sleeps, [0.5, 0.5])

    def test_retries_give_up_after_three_attempts(self) -> None:
        def down(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.platform.on("queryAsyncJobResult", down)
        with self.assertRaises(httpx.ConnectError):
            self._client().get_async_job_result("j1", 60)
        self.assertEqual(len(self.platform.requests), 3)

    def test_other_calls_are_not_retried(self) -> None:
        def down(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.platform.on("listZones", down)
        with self.assertRaises(httpx.ConnectError):
            self._client().new_request("listZones", {})
        self.assertEqual(len(self.platform.requests), 1)

    def test_params_base_is_abstract(self) -> None:
        with self.assertRaises(TypeError):
            self.rt.BaseParams()

    def test_encoders(self) -> None:
        u: dict[str, str] = {}
        self.rt.encode_map(u, "details", {"cpuNumber": 2})
        self.rt.encode_map(u, "tags", {"env": "prod"}, "key", "value")
        self.assertEqual(u, {"details[0].cpuNumber": "2", "tags[0].key": "env", "tags[0].value": "prod"})
        self.assertEqual(self.rt.format_bool(True), "true")
        self.assertEqual(self.rt.encode_raw({"a": 1}), '{"a": 1}')
        self.assertEqual(self.rt.encode_raw("x"), "x")

    def test_is_id(self) -> None:
        self.assertTrue(self.rt.is_id("6f1b7a44-0c4e-4a6e-9f43-1a2b3c4d5e6f"))
        self.assertTrue(self.rt.is_id("-1"))
        self.assertFalse(self.rt.is_id("ROOT"))

    def test_converters(self) -> None:
        rt = self.rt
        self.assertEqual(rt.get_raw_value({"zone": {"id": "z1"}}), {"id": "z1"})
        with self.assertRaises(rt.ResponseParseError):
            rt.get_raw_value({})
        self.assertEqual(rt.merge_job_result({"jobid": "j1", "id": "a"}, {"id": "b"}), {"jobid": "j1", "id": "b"})
        self.assertEqual(rt.collapse_single_rule({"ingressrule": [{"ruleid": "r1"}]}, "ingressrule"), {"ruleid": "r1"})
        two = {"ingressrule": [{"ruleid": "r1"}, {"ruleid": "r2"}]}
        self.assertEqual(rt.collapse_single_rule(two, "ingressrule"), two)
        self.assertEqual(
            rt.coerce_legacy_fields({"success": "true", "ostypeid": 12}),
            {"success": True, "ostypeid": "12"},
        )
        self.assertEqual(rt.convert_firewall_response({"startport": "22", "endport": 23}), {"startport": 22, "endport": 23})
        self.assertEqual(
            rt.convert_firewall_response({"count": 1, "firewallrule": [{"startport": "80"}]}),
            {"count": 1, "firewallrule": [{"startport": 80}]},
        )
        with self.assertRaises(rt.ResponseParseError):
            rt.convert_firewall_response({"startport": "http"})


if __name__ == "__main__":
    unittest.main()
