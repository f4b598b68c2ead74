"""
Response Piece
Shapes the value returned to the caller of the flow
"""
import json

from flowrun.pieces.base import (
    NodePlugin,
    ExecutionContext,
    Property,
    PropertyType,
    register_plugin,
    short_text_property,
)


def _maybe_json(value, fallback):
    if value in (None, ''):
        return fallback
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


async def response_handler(props: dict, ctx: ExecutionContext) -> dict:
    """
    Return a response to the flow caller; the run's output is the last
    response node that executed
    """
    try:
        status_code = int(props.get('statusCode') or 200)
    except (TypeError, ValueError):
        status_code = 200

    headers = _maybe_json(props.get('customHeaders'), {})

    return {
        'statusCode': status_code,
        'body': _maybe_json(props.get('body'), {}),
        'contentType': props.get('contentType') or 'application/json',
        'headers': headers if isinstance(headers, dict) else {},
    }


response_plugin = NodePlugin(
    type="response",
    display_name="Response",
    description="Return a custom response to the caller",
    category="output",
    properties=[
        Property(
            name="statusCode",
            display_name="Status Code",
            description="HTTP status code",
            type=PropertyType.NUMBER,
            default_value=200,
        ),
        Property(
            name="body",
            display_name="Response Body",
            description="JSON response body",
            type=PropertyType.JSON,
            required=True,
        ),
        short_text_property(
            name="contentType",
            display_name="Content Type",
            description="Response content type",
            placeholder="application/json",
        ),
        Property(
            name="customHeaders",
            display_name="Headers",
            description="Response headers",
            type=PropertyType.OBJECT,
        ),
    ],
    handler=response_handler,
)

register_plugin(response_plugin)
