from __future__ import annotations

from typing import Sequence

from .policy import Policy, operations_with

_RUNTIME_HEAD: list[str] = [
    '"""Shared runtime of the generated CloudStack client.',
    "",
    "Request signing, transport selection, envelope unwrapping, async job polling",
    "and the compatibility converters every service module relies on.",
    '"""',
    "",
    "from __future__ import annotations",
    "",
    "import base64",
    "import hashlib",
    "import hmac",
    "import json",
    "import logging",
    "import re",
    "import time",
    "from abc import ABC, abstractmethod",
    "from typing import Any, Callable, Mapping, Sequence",
    "from urllib.parse import quote_plus",
    "",
    "import httpx",
    "from pydantic import BaseModel, ConfigDict",
    "",
    "logger = logging.getLogger(__name__)",
    "",
    'UNLIMITED_RESOURCE_ID = "-1"',
    "DEFAULT_ASYNC_TIMEOUT = 300",
    "DEFAULT_HTTP_TIMEOUT = 60.0",
    "MAX_POLL_INTERVAL = 15",
    "JOB_STATUS_ATTEMPTS = 3",
    "JOB_STATUS_RETRY_PAUSE = 0.5",
    'INVALID_ID_MESSAGE = "Invalid parameter id value={} due to incorrect long value format, or entity does not exist"',
    "",
]

_RUNTIME_BODY: list[str] = [
    '_ID_RE = re.compile(r"^([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}|-1)$")',
    '_PORT_FIELDS = ("endport", "startport")',
    '_FIREWALL_RULES_KEY = "firewallrule"',
    "",
    "",
    "class CloudStackError(Exception):",
    '    """Base class for every error raised by the generated client."""',
    "",
    "",
    "class CloudStackApiError(CloudStackError):",
    "    def __init__(self, *, errorcode: int, cserrorcode: int, errortext: str, status_code: int | None = None) -> None:",
    "        self.errorcode = errorcode",
    "        self.cserrorcode = cserrorcode",
    "        self.errortext = errortext",
    "        self.status_code = status_code",
    "        super().__init__(str(self))",
    "",
    "    def __str__(self) -> str:",
    '        return f"CloudStack API error {self.errorcode} (CSExceptionErrorCode: {self.cserrorcode}): {self.errortext}"',
    "",
    "",
    "class ResponseParseError(CloudStackError):",
    "    def __init__(self, message: str, *, raw: Any | None = None) -> None:",
    "        self.raw = raw",
    "        super().__init__(message)",
    "",
    "",
    "class AsyncJobError(CloudStackError):",
    "    def __init__(self, message: str, *, jobid: str) -> None:",
    "        self.jobid = jobid",
    "        super().__init__(message)",
    "",
    "",
    "class AsyncTimeoutError(CloudStackError):",
    '    """The job did not finish in time; ``response`` holds the submission response when known."""',
    "",
    "    def __init__(self, *, jobid: str, timeout: float) -> None:",
    "        self.jobid = jobid",
    "        self.timeout = timeout",
    "        self.response: Any | None = None",
    "        super().__init__(str(self))",
    "",
    "    def __str__(self) -> str:",
    '        return f"Timeout while waiting for async job {self.jobid} to finish ({self.timeout}s)"',
    "",
    "",
    "class NoMatchError(CloudStackError):",
    "    def __init__(self, message: str, *, count: int = 0) -> None:",
    "        self.count = count",
    "        super().__init__(message)",
    "",
    "",
    "class AmbiguousMatchError(CloudStackError):",
    "    def __init__(self, message: str, *, count: int) -> None:",
    "        self.count = count",
    "        super().__init__(message)",
    "",
    "",
    "class ResponseModel(BaseModel):",
    '    model_config = ConfigDict(populate_by_name=True, extra="allow")',
    "",
    "",
    "class SecondaryIP(ResponseModel):",
    "    id: str | None = None",
    "    ipaddress: str | None = None",
    "",
    "",
    "class BaseParams(ABC):",
    '    """Name/value bag behind every generated parameter type."""',
    "",
    "    def __init__(self) -> None:",
    "        self._p: dict[str, Any] = {}",
    "",
    "    def _set(self, name: str, value: Any) -> None:",
    "        self._p[name] = value",
    "",
    "    @abstractmethod",
    "    def to_query(self) -> dict[str, str]:",
    "        raise NotImplementedError",
    "",
    "    def __repr__(self) -> str:",
    '        return f"{type(self).__name__}({self._p!r})"',
    "",
    "",
    'OptionFunc = Callable[["BaseClient", BaseParams], None]',
    "",
    "",
    "def is_id(value: str) -> bool:",
    "    return _ID_RE.match(value) is not None",
    "",
    "",
    "def format_bool(value: bool) -> str:",
    '    return "true" if value else "false"',
    "",
    "",
    "def encode_raw(value: Any) -> str:",
    "    return value if isinstance(value, str) else json.dumps(value)",
    "",
    "",
    "def encode_map(",
    "    u: dict[str, str],",
    "    name: str,",
    "    value: Mapping[str, Any],",
    "    key_label: str | None = None,",
    "    value_label: str | None = None,",
    ") -> None:",
    "    for i, (k, v) in enumerate(value.items()):",
    "        if key_label is None or value_label is None:",
    '            u[f"{name}[{i}].{k}"] = str(v)',
    "        else:",
    '            u[f"{name}[{i}].{key_label}"] = str(k)',
    '            u[f"{name}[{i}].{value_label}"] = str(v)',
    "",
    "",
    "def encode_values(params: Mapping[str, str]) -> str:",
    '    """Canonical query string: sorted keys left as-is, values URL-encoded."""',
    '    return "&".join(f"{key}={quote_plus(params[key])}" for key in sorted(params))',
    "",
    "",
    "def sign(query: str, secret: str) -> str:",
    '    canonical = query.lower().replace("+", "%20")',
    '    digest = hmac.new(secret.encode("utf-8"), canonical.encode("utf-8"), hashlib.sha1).digest()',
    '    return base64.b64encode(digest).decode("ascii")',
    "",
    "",
    "def get_raw_value(value: Any) -> Any:",
    '    """Return the payload of a single-key envelope."""',
    "    if isinstance(value, Mapping) and value:",
    "        return next(iter(value.values()))",
    '    raise ResponseParseError(f"Unable to extract the raw value from:\\n\\n{json.dumps(value)}\\n\\n", raw=value)',
    "",
    "",
    "def decode_response(response: httpx.Response) -> Any:",
    "    try:",
    "        body = response.json()",
    "    except ValueError as exc:",
    '        raise ResponseParseError(f"Response body is not JSON (HTTP {response.status_code})", raw=response.text) from exc',
    "",
    "    payload = get_raw_value(body)",
    "    if response.status_code == 200:",
    "        return payload",
    "",
    "    try:",
    '        errorcode = int(payload["errorcode"])',
    '        cserrorcode = int(payload.get("cserrorcode", 0))',
    '        errortext = str(payload.get("errortext", ""))',
    "    except (AttributeError, KeyError, TypeError, ValueError) as exc:",
    '        raise ResponseParseError(f"Unable to decode error response (HTTP {response.status_code})", raw=payload) from exc',
    "    raise CloudStackApiError(",
    "        errorcode=errorcode,",
    "        cserrorcode=cserrorcode,",
    "        errortext=errortext,",
    "        status_code=response.status_code,",
    "    )",
    "",
    "",
    "def job_id(value: Any) -> str:",
    '    if isinstance(value, Mapping) and value.get("jobid"):',
    '        return str(value["jobid"])',
    '    raise ResponseParseError("Async job submission did not return a job id", raw=value)',
    "",
    "",
    "def merge_job_result(submitted: Any, result: Any) -> Any:",
    "    # Fields missing from the job result keep their submitted value.",
    "    if isinstance(submitted, Mapping) and isinstance(result, Mapping):",
    "        return {**submitted, **result}",
    "    return result",
    "",
    "",
    "def coerce_legacy_fields(data: Any) -> Any:",
    "    if not isinstance(data, Mapping):",
    "        return data",
    "    data = dict(data)",
    '    success = data.get("success")',
    "    if isinstance(success, str):",
    '        data["success"] = success == "true"',
    '    ostypeid = data.get("ostypeid")',
    "    if isinstance(ostypeid, (int, float)) and not isinstance(ostypeid, bool):",
    '        data["ostypeid"] = str(int(ostypeid))',
    "    return data",
    "",
    "",
    "def _coerce_ports(rule: Mapping[str, Any]) -> dict[str, Any]:",
    "    out = dict(rule)",
    "    for key in _PORT_FIELDS:",
    "        value = out.get(key)",
    "        if isinstance(value, str):",
    "            try:",
    "                out[key] = int(value)",
    "            except ValueError as exc:",
    '                raise ResponseParseError(f"Invalid {key} value: {value!r}", raw=rule) from exc',
    "    return out",
    "",
    "",
    "def convert_firewall_response(data: Any) -> Any:",
    "    if not isinstance(data, Mapping):",
    "        return data",
    "    if _FIREWALL_RULES_KEY in data:",
    "        rules = data.get(_FIREWALL_RULES_KEY) or []",
    "        return {",
    "            **data,",
    "            _FIREWALL_RULES_KEY: [_coerce_ports(r) if isinstance(r, Mapping) else r for r in rules],",
    "        }",
    "    return _coerce_ports(data)",
    "",
    "",
    "def collapse_single_rule(data: Any, key: str) -> Any:",
    "    if isinstance(data, Mapping):",
    "        rules = data.get(key)",
    "        if isinstance(rules, list) and len(rules) == 1:",
    "            return rules[0]",
    "    return data",
    "",
    "",
    "def with_domain(domain: str) -> OptionFunc:",
    '    """Set ``domainid`` from a domain id or name on parameters that accept it."""',
    "",
    "    def apply(client: BaseClient, params: BaseParams) -> None:",
    '        setter = getattr(params, "set_domainid", None)',
    "        if setter is None or not domain:",
    "            return",
    "        value = domain",
    "        if not is_id(value):",
    '            value, _ = getattr(client, "domain").get_domain_id(value)',
    "        setter(value)",
    "",
    "    return apply",
    "",
    "",
    "def with_project(project: str) -> OptionFunc:",
    '    """Set ``projectid`` from a project id or name on parameters that accept it."""',
    "",
    "    def apply(client: BaseClient, params: BaseParams) -> None:",
    '        setter = getattr(params, "set_projectid", None)',
    "        if setter is None or not project:",
    "            return",
    "        value = project",
    "        if not is_id(value):",
    '            value, _ = getattr(client, "project").get_project_id(value)',
    "        setter(value)",
    "",
    "    return apply",
    "",
    "",
    "def with_vpc_id(vpcid: str) -> OptionFunc:",
    "    def apply(client: BaseClient, params: BaseParams) -> None:",
    '        setter = getattr(params, "set_vpcid", None)',
    "        if setter is None or not vpcid:",
    "            return",
    "        setter(vpcid)",
    "",
    "    return apply",
    "",
    "",
    "class BaseClient:",
    '    """Signs and sends requests, unwraps envelopes and waits for async jobs."""',
    "",
    "    def __init__(",
    "        self,",
    "        api_url: str,",
    "        api_key: str,",
    "        secret: str,",
    "        *,",
    "        async_jobs: bool = False,",
    "        verify_ssl: bool = True,",
    "        http_get_only: bool = False,",
    "        async_timeout: float = DEFAULT_ASYNC_TIMEOUT,",
    "        http_client: httpx.Client | None = None,",
    "        options: Sequence[OptionFunc] | None = None,",
    "        clock: Callable[[], float] = time.monotonic,",
    "        sleep: Callable[[float], None] = time.sleep,",
    "    ) -> None:",
    "        self.base_url = api_url",
    "        self.async_jobs = async_jobs",
    "        self.http_get_only = http_get_only",
    "        self.async_timeout = async_timeout",
    "        self._api_key = api_key",
    "        self._secret = secret",
    "        self._options: list[OptionFunc] = list(options or [])",
    "        self._clock = clock",
    "        self._sleep = sleep",
    "        self._owns_http = http_client is None",
    "        if http_client is None:",
    "            http_client = httpx.Client(verify=verify_ssl, timeout=DEFAULT_HTTP_TIMEOUT, follow_redirects=True)",
    "        self._http = http_client",
    "",
    "    def __enter__(self) -> BaseClient:",
    "        return self",
    "",
    "    def __exit__(self, *exc_info: object) -> None:",
    "        self.close()",
    "",
    "    def close(self) -> None:",
    "        if self._owns_http:",
    "            self._http.close()",
    "",
    "    def set_async_timeout(self, timeout: float) -> None:",
    "        self.async_timeout = timeout",
    "",
    "    def default_options(self, *options: OptionFunc) -> None:",
    '        """Replace the options applied to every courtesy helper call."""',
    "        self._options = list(options)",
    "",
    "    def apply_options(self, params: BaseParams, opts: Sequence[OptionFunc] = ()) -> None:",
    "        for fn in [*self._options, *opts]:",
    "            fn(self, params)",
    "",
    "    def new_request(self, api: str, params: Mapping[str, str]) -> Any:",
    '        """Sign and send one API call; returns the unwrapped payload."""',
    "        values = dict(params)",
    '        values["apiKey"] = self._api_key',
    '        values["command"] = api',
    '        values["response"] = "json"',
    "",
    "        query = encode_values(values)",
    "        signature = sign(query, self._secret)",
    "        if not self.http_get_only and api in POST_APIS:",
    '            values["signature"] = signature',
    '            logger.debug("POST %s", api)',
    "            response = self._http.post(self.base_url, data=values)",
    "        else:",
    '            logger.debug("GET %s", api)',
    '            response = self._http.get(f"{self.base_url}?{query}&signature={quote_plus(signature)}")',
    "        return decode_response(response)",
    "",
    "    def new_idempotent_request(self, api: str, params: Mapping[str, str]) -> Any:",
    "        attempt = 1",
    "        while True:",
    "            try:",
    "                return self.new_request(api, params)",
    "            except httpx.TransportError as exc:",
    "                if attempt >= JOB_STATUS_ATTEMPTS:",
    "                    raise",
    '                logger.debug("%s attempt %d failed: %s", api, attempt, exc)',
    "                attempt += 1",
    "                self._sleep(JOB_STATUS_RETRY_PAUSE)",
    "",
    "    def get_async_job_result(self, jobid: str, timeout: float) -> Any:",
    '        """Poll the job until it finishes and return its raw result.',
    "",
    "        The pause between polls grows by one second per attempt up to",
    "        MAX_POLL_INTERVAL.",
    '        """',
    "        started = self._clock()",
    "        interval = 0",
    "        while True:",
    '            r = self.new_idempotent_request("queryAsyncJobResult", {"jobid": jobid})',
    "            if not isinstance(r, Mapping):",
    '                raise ResponseParseError("Unexpected job status response", raw=r)',
    "",
    '            status = r.get("jobstatus")',
    "            if status == 1:",
    '                return r.get("jobresult")',
    "            if status == 2:",
    '                result = r.get("jobresult")',
    '                if r.get("jobresulttype") == "text":',
    "                    message = result if isinstance(result, str) else json.dumps(result)",
    "                else:",
    '                    message = f"Undefined error: {json.dumps(result)}"',
    "                raise AsyncJobError(message, jobid=jobid)",
    "",
    "            if self._clock() - started > timeout:",
    "                raise AsyncTimeoutError(jobid=jobid, timeout=timeout)",
    "",
    "            if interval < MAX_POLL_INTERVAL:",
    "                interval += 1",
    '            logger.debug("Job %s pending, polling again in %ds", jobid, interval)',
    "            self._sleep(interval)",
]

_SERVICE_EXPORTS = (
    "DEFAULT_ASYNC_TIMEOUT",
    "UNLIMITED_RESOURCE_ID",
    "AmbiguousMatchError",
    "AsyncJobError",
    "AsyncTimeoutError",
    "BaseClient",
    "CloudStackApiError",
    "CloudStackError",
    "NoMatchError",
    "OptionFunc",
    "ResponseParseError",
    "is_id",
    "with_domain",
    "with_project",
    "with_vpc_id",
)


def _render(lines: list[str]) -> str:
    return "\n".join(lines).rstrip() + "\n"


def render_runtime() -> str:
    lines = list(_RUNTIME_HEAD)
    lines.append("# Sent as a form-encoded POST unless the client is GET-only.")
    lines.append("POST_APIS: frozenset[str] = frozenset(")
    lines.append("    {")
    for api in operations_with(Policy.POST):
        lines.append(f'        "{api}",')
    lines.append("    }")
    lines.append(")")
    lines.extend(_RUNTIME_BODY)
    return _render(lines)


def render_package_init(services: Sequence[tuple[str, str, str]]) -> str:
    """Render ``__init__.py`` for ``(class_name, module_name, attribute)`` triples."""
    lines: list[str] = []
    lines.append('"""CloudStack API client generated from the platform\'s listApis catalog."""')
    lines.append("")
    lines.append("from __future__ import annotations")
    lines.append("")
    lines.append("from typing import Any")
    lines.append("")
    lines.append("from pydantic import BaseModel")
    lines.append("")
    for _, module, _ in services:
        lines.append(f"from . import {module} as _{module}")
    for class_name, module, _ in services:
        lines.append(f"from .{module} import {class_name}")
    lines.append("from .runtime import (")
    lines.extend(f"    {name}," for name in _SERVICE_EXPORTS)
    lines.append(")")
    lines.append("")
    lines.append("_SERVICE_MODULES = (")
    lines.extend(f"    _{module}," for _, module, _ in services)
    lines.append(")")
    lines.append("")
    lines.append("")
    lines.append("class CloudStackClient(BaseClient):")
    lines.append('    """CloudStack API client with one attribute per service group."""')
    lines.append("")
    lines.append("    def __init__(self, api_url: str, api_key: str, secret: str, **kwargs: Any) -> None:")
    lines.append("        super().__init__(api_url, api_key, secret, **kwargs)")
    for class_name, _, attribute in services:
        lines.append(f"        self.{attribute} = {class_name}(self)")
    lines.append("")
    lines.append("")
    lines.extend(
        [
            "def new_client(api_url: str, api_key: str, secret: str, verify_ssl: bool = True, **kwargs: Any) -> CloudStackClient:",
            '    """Client that returns async job submissions without waiting for them."""',
            "    return CloudStackClient(api_url, api_key, secret, async_jobs=False, verify_ssl=verify_ssl, **kwargs)",
            "",
            "",
            "def new_async_client(",
            "    api_url: str, api_key: str, secret: str, verify_ssl: bool = True, **kwargs: Any",
            ") -> CloudStackClient:",
            '    """Client that waits for async jobs until they finish or ``async_timeout`` expires."""',
            "    return CloudStackClient(api_url, api_key, secret, async_jobs=True, verify_ssl=verify_ssl, **kwargs)",
            "",
            "",
            "def _link_models() -> None:",
            "    # Records may name records defined in sibling service modules.",
            "    models: dict[str, type[BaseModel]] = {}",
            "    for module in _SERVICE_MODULES:",
            "        for name, value in vars(module).items():",
            "            if isinstance(value, type) and issubclass(value, BaseModel) and value.__module__ == module.__name__:",
            "                models[name] = value",
            "    for module in _SERVICE_MODULES:",
            "        namespace = vars(module)",
            "        for name, value in models.items():",
            "            namespace.setdefault(name, value)",
            "    for value in models.values():",
            "        value.model_rebuild()",
            "",
            "",
            "_link_models()",
            "",
        ]
    )
    exported = sorted(["CloudStackClient", "new_async_client", "new_client", *_SERVICE_EXPORTS, *(c for c, _, _ in services)])
    lines.append("__all__ = [")
    lines.extend(f'    "{name}",' for name in exported)
    lines.append("]")
    return _render(lines)
