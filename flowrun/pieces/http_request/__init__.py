"""
HTTP Request Piece
Calls an arbitrary HTTP endpoint
"""
import json
import logging

import httpx

from flowrun.flow_engine.config import get_config
from flowrun.pieces.base import (
    NodePlugin,
    ActionResult,
    ExecutionContext,
    Property,
    PropertyType,
    register_plugin,
    short_text_property,
    dropdown_property,
)

logger = logging.getLogger(__name__)


def build_client(**kwargs) -> httpx.AsyncClient:
    return httpx.AsyncClient(**kwargs)


def _parse_headers(raw) -> dict:
    if not raw:
        return {}
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items()}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring headers that are not valid JSON")
        return {}
    return parsed if isinstance(parsed, dict) else {}


async def http_request_handler(props: dict, ctx: ExecutionContext) -> ActionResult:
    """
    Send the request; any non-2xx status is a failure
    """
    url = (props.get('url') or '').strip() if isinstance(props.get('url'), str) else ''
    if not url:
        return ActionResult(
            success=False,
            error={"message": "HTTP Request failed: URL is empty or not configured."}
        )

    try:
        parsed_url = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError):
        parsed_url = None
    if parsed_url is None or parsed_url.scheme not in ('http', 'https') or not parsed_url.host:
        return ActionResult(
            success=False,
            error={"message": f'HTTP Request failed: Invalid URL format "{url}".'}
        )

    method = (props.get('method') or 'GET').upper()
    headers = _parse_headers(props.get('headers'))
    if props.get('apiKey'):
        headers['Authorization'] = f"Bearer {props['apiKey']}"

    body = props.get('body')
    request_kwargs = {'headers': headers}
    if method != 'GET' and body not in (None, ''):
        if isinstance(body, (dict, list)):
            request_kwargs['json'] = body
        else:
            request_kwargs['content'] = str(body)

    try:
        async with build_client(timeout=get_config().http_timeout) as client:
            response = await client.request(method, url, **request_kwargs)
    except httpx.HTTPError as e:
        return ActionResult(
            success=False,
            error={"message": f"HTTP Request failed: {e}"}
        )

    try:
        data = response.json()
    except ValueError:
        data = response.text

    output = {
        'status': response.status_code,
        'statusText': response.reason_phrase,
        'data': data,
        'headers': dict(response.headers),
    }

    if not response.is_success:
        return ActionResult(
            success=False,
            data=output,
            error={"message": f"HTTP {response.status_code} {response.reason_phrase}".strip()}
        )

    return ActionResult(success=True, data=output)


http_request_plugin = NodePlugin(
    type="http-request",
    display_name="HTTP Request",
    description="Make an HTTP request to any URL",
    category="action",
    properties=[
        short_text_property(
            name="url",
            display_name="URL",
            description="Request URL",
            required=True,
            placeholder="https://api.example.com/items",
        ),
        dropdown_property(
            name="method",
            display_name="Method",
            description="HTTP method",
            options=[{"label": m, "value": m} for m in ("GET", "POST", "PUT", "PATCH", "DELETE")],
        ),
        Property(
            name="headers",
            display_name="Headers",
            description="Headers as a JSON object",
            type=PropertyType.JSON,
        ),
        Property(
            name="body",
            display_name="Body",
            description="Request body",
            type=PropertyType.JSON,
        ),
        short_text_property(
            name="apiKey",
            display_name="API Key",
            description="Sent as a Bearer token, usually {{env.SOME_KEY}}",
        ),
    ],
    handler=http_request_handler,
)

register_plugin(http_request_plugin)
