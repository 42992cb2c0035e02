"""
Remote Data Gateway Client
HTTP client for the hosted table API (PostgREST conventions) and serverless functions
"""
import time
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from newsdesk.core.exceptions import ConfigurationException, GatewayQueryException, FunctionInvocationException
from newsdesk.core.logging_config import get_logger
from newsdesk.services.prometheus_metrics import get_metrics

logger = get_logger(__name__)

_RESERVED_CHARS = set(',()":')


def format_value(value: Any) -> str:
    """Render a Python value as a PostgREST filter operand"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _list_operand(values: Iterable[Any]) -> str:
    rendered = []
    for value in values:
        text = format_value(value)
        if any(ch in _RESERVED_CHARS for ch in text):
            text = '"' + text.replace('"', '\\"') + '"'
        rendered.append(text)
    return "(" + ",".join(rendered) + ")"


class TableQuery:
    """
    Fluent filter builder for one table.

    Filters accumulate as query parameters; execute/update/delete/insert
    are the terminal calls that hit the gateway.
    """

    def __init__(self, gateway: "RemoteDataGateway", table: str):
        self._gateway = gateway
        self.table = table
        self._columns = "*"
        self._filters: List[Tuple[str, str]] = []
        self._order: List[str] = []
        self._limit: Optional[int] = None

    def select(self, columns: str = "*") -> "TableQuery":
        # Collapse whitespace so multi-line embeds stay valid
        self._columns = "".join(columns.split())
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        self._filters.append((column, f"eq.{format_value(value)}"))
        return self

    def neq(self, column: str, value: Any) -> "TableQuery":
        self._filters.append((column, f"neq.{format_value(value)}"))
        return self

    def gte(self, column: str, value: Any) -> "TableQuery":
        self._filters.append((column, f"gte.{format_value(value)}"))
        return self

    def lt(self, column: str, value: Any) -> "TableQuery":
        self._filters.append((column, f"lt.{format_value(value)}"))
        return self

    def in_(self, column: str, values: Iterable[Any]) -> "TableQuery":
        self._filters.append((column, f"in.{_list_operand(values)}"))
        return self

    def not_in(self, column: str, values: Iterable[Any]) -> "TableQuery":
        self._filters.append((column, f"not.in.{_list_operand(values)}"))
        return self

    def or_(self, expression: str) -> "TableQuery":
        """Raw PostgREST disjunction, e.g. 'attempts.gte.3,status.eq.failed'"""
        self._filters.append(("or", f"({expression})"))
        return self

    def order(self, column: str, desc: bool = False) -> "TableQuery":
        self._order.append(f"{column}.{'desc' if desc else 'asc'}")
        return self

    def limit(self, count: int) -> "TableQuery":
        self._limit = count
        return self

    @property
    def filters(self) -> List[Tuple[str, str]]:
        return list(self._filters)

    def build_params(self, include_select: bool = True) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = []
        if include_select:
            params.append(("select", self._columns))
        params.extend(self._filters)
        if self._order:
            params.append(("order", ",".join(self._order)))
        if self._limit is not None:
            params.append(("limit", str(self._limit)))
        return params

    async def execute(self) -> List[Dict[str, Any]]:
        return await self._gateway.request("GET", self.table, self.build_params())

    async def update(self, values: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await self._gateway.request(
            "PATCH", self.table, self._mutation_params(), json=_jsonable(values)
        )

    async def delete(self) -> List[Dict[str, Any]]:
        return await self._gateway.request("DELETE", self.table, self._mutation_params())

    async def insert(self, rows: Any) -> List[Dict[str, Any]]:
        return await self._gateway.request(
            "POST", self.table, [("select", self._columns)], json=_jsonable(rows)
        )

    def _mutation_params(self) -> List[Tuple[str, str]]:
        if not self._filters:
            # PostgREST rejects unfiltered writes; fail before the round trip
            raise GatewayQueryException(self.table, "refusing to mutate without a filter")
        return [("select", self._columns)] + self._filters


def _jsonable(payload: Any) -> Any:
    if isinstance(payload, dict):
        return {k: _jsonable(v) for k, v in payload.items()}
    if isinstance(payload, (list, tuple)):
        return [_jsonable(v) for v in payload]
    if isinstance(payload, datetime):
        return payload.isoformat()
    if isinstance(payload, Enum):
        return payload.value
    return payload


class RemoteDataGateway:
    """Client for the hosted backend: table queries and function invocation"""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = _checked_base_url(base_url)
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self.metrics = get_metrics()

    @property
    def rest_url(self) -> str:
        return f"{self.base_url}/rest/v1"

    @property
    def functions_url(self) -> str:
        return f"{self.base_url}/functions/v1"

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def table(self, name: str) -> TableQuery:
        return TableQuery(self, name)

    async def request(
        self,
        method: str,
        table: str,
        params: List[Tuple[str, str]],
        json: Any = None
    ) -> List[Dict[str, Any]]:
        """
        Execute a table request

        Args:
            method: GET, POST, PATCH or DELETE
            table: Table name under /rest/v1
            params: Ordered query parameters (select, filters, order, limit)
            json: Body for inserts and updates

        Returns:
            Rows returned by the gateway (mutations ask for representation)
        """
        prefer = "return=representation" if method != "GET" else None
        started = time.monotonic()

        try:
            async with self._client() as client:
                response = await client.request(
                    method,
                    f"{self.rest_url}/{table}",
                    params=params,
                    json=json,
                    headers=self._headers(prefer)
                )
                response.raise_for_status()
                data = response.json() if response.content else []

        except httpx.HTTPStatusError as e:
            self.metrics.record_gateway_call("query", "failure", time.monotonic() - started)
            detail = _error_detail(e.response)
            logger.error(f"Gateway {method} {table} HTTP error: {e.response.status_code} - {detail}")
            raise GatewayQueryException(table, detail, status_code=e.response.status_code)
        except httpx.TimeoutException:
            self.metrics.record_gateway_call("query", "timeout", time.monotonic() - started)
            logger.error(f"Gateway {method} {table} timeout")
            raise GatewayQueryException(table, "request timed out")
        except httpx.HTTPError as e:
            self.metrics.record_gateway_call("query", "failure", time.monotonic() - started)
            logger.error(f"Gateway {method} {table} transport error: {e}")
            raise GatewayQueryException(table, str(e))
        except ValueError as e:
            self.metrics.record_gateway_call("query", "failure", time.monotonic() - started)
            raise GatewayQueryException(table, f"invalid JSON response: {e}")

        self.metrics.record_gateway_call("query", "success", time.monotonic() - started)

        if isinstance(data, dict):
            return [data]
        return data or []

    async def invoke(self, function_name: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Invoke a serverless function

        Args:
            function_name: Name under /functions/v1
            body: JSON body

        Returns:
            Parsed JSON result

        Raises:
            FunctionInvocationException: transport/HTTP failure, or success=false
        """
        started = time.monotonic()

        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.functions_url}/{function_name}",
                    json=_jsonable(body or {}),
                    headers=self._headers()
                )
                response.raise_for_status()
                data = response.json() if response.content else {}

        except httpx.HTTPStatusError as e:
            self.metrics.record_gateway_call("function", "failure", time.monotonic() - started)
            detail = _error_detail(e.response)
            logger.error(f"Function {function_name} HTTP error: {e.response.status_code} - {detail}")
            raise FunctionInvocationException(function_name, detail, status_code=e.response.status_code)
        except httpx.TimeoutException:
            self.metrics.record_gateway_call("function", "timeout", time.monotonic() - started)
            logger.error(f"Function {function_name} timeout")
            raise FunctionInvocationException(function_name, "request timed out")
        except httpx.HTTPError as e:
            self.metrics.record_gateway_call("function", "failure", time.monotonic() - started)
            logger.error(f"Function {function_name} transport error: {e}")
            raise FunctionInvocationException(function_name, str(e))
        except ValueError as e:
            self.metrics.record_gateway_call("function", "failure", time.monotonic() - started)
            raise FunctionInvocationException(function_name, f"invalid JSON response: {e}")

        if not isinstance(data, dict):
            data = {"success": True, "data": data}

        if data.get("success") is False:
            self.metrics.record_gateway_call("function", "failure", time.monotonic() - started)
            raise FunctionInvocationException(function_name, data.get("error") or "function reported failure")

        self.metrics.record_gateway_call("function", "success", time.monotonic() - started)
        logger.info(f"Function {function_name} completed")
        return data


def _checked_base_url(base_url: Optional[str]) -> str:
    try:
        url = httpx.URL(base_url or "")
    except httpx.InvalidURL as e:
        raise ConfigurationException(f"Invalid gateway URL {base_url!r}: {e}", config_key="gateway_url")

    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationException(
            f"Gateway URL must be an absolute http(s) URL, got {base_url!r}",
            config_key="gateway_url"
        )
    return str(url).rstrip("/")


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        return payload.get("message") or payload.get("error") or str(payload)
    return str(payload)
