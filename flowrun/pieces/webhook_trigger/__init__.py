"""
Webhook Trigger Piece
Exposes the incoming request that started the run
"""
from flowrun.pieces.base import (
    NodePlugin,
    ActionResult,
    ExecutionContext,
    register_plugin,
)


async def webhook_trigger_handler(props: dict, ctx: ExecutionContext) -> ActionResult:
    """
    Webhook trigger handler
    The request itself is received by the platform and placed in the flow
    context; this just surfaces it as node output
    """
    request = ctx.flow_context.get('request') or {}
    body = request.get('body') or {}

    return ActionResult(
        success=True,
        data={
            'body': body,
            'payload': body,
            'headers': request.get('headers') or {},
            'query': request.get('query') or {},
            'method': request.get('method') or 'POST',
        }
    )


webhook_trigger_plugin = NodePlugin(
    type="webhook-trigger",
    display_name="Webhook Trigger",
    description="Starts the flow when a webhook is received",
    category="trigger",
    properties=[],
    handler=webhook_trigger_handler,
)

register_plugin(webhook_trigger_plugin)
