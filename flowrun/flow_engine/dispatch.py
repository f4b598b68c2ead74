"""
Action dispatch - the executable behavior behind a node type

Two variants of the same capability:
- HttpActionDispatcher: POST {base}/functions/v1/{functionName} on the
  serverless functions endpoint
- PluginActionDispatcher: in-process NodePlugin from the pieces registry

RoutingDispatcher prefers a registered plugin and falls back to HTTP.

Dispatchers never raise for handler failures. Every call returns an
ActionResult; a thrown handler becomes success=False with threw=True in the
error mapping.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from flowrun.flow_engine.config import EngineConfig, get_config
from flowrun.flow_engine.models import FlowNode
from flowrun.pieces.base import ActionResult, ExecutionContext, PluginRegistry

logger = logging.getLogger(__name__)


# Node type -> serverless function name
FUNCTION_NAMES: Dict[str, str] = {
    'http-request': 'http-request',
    'ai-agent': 'ai-agent-proxy',
    'gmail': 'gmail-proxy',
    'gmail-action': 'gmail-proxy',
    'resend': 'resend-proxy',
    'resend-action': 'resend-proxy',
    'brevo': 'brevo-proxy',
    'mailchimp': 'mailchimp-proxy',
    'google-sheets': 'google-sheets-proxy',
    'google-docs': 'google-docs-proxy',
    'hubspot': 'hubspot-proxy',
    'salesforce': 'salesforce-proxy',
    'stripe': 'stripe-proxy',
    'airtable': 'airtable-proxy',
    'zendesk': 'zendesk-proxy',
}


def function_name_for(node_type: str) -> str:
    """Function name for a node type; unmapped types use "{type}-proxy" """
    return FUNCTION_NAMES.get(node_type) or f"{node_type}-proxy"


def _failure(message: str, threw: bool = False, data: Any = None) -> ActionResult:
    return ActionResult(success=False, data=data, error={'message': message, 'threw': threw})


def context_from_payload(payload: Dict[str, Any], node_outputs: Optional[Dict[str, Any]] = None) -> ExecutionContext:
    """Build the plugin execution context from a dispatch payload"""
    return ExecutionContext(
        node_id=payload.get('nodeId'),
        node_type=payload.get('nodeType'),
        flow_id=payload.get('flowId'),
        run_id=payload.get('runId'),
        variables=dict(payload.get('variables') or {}),
        upstream_outputs=dict(payload.get('upstreamOutputs') or {}),
        node_outputs=dict(node_outputs or {}),
        flow_context=dict(payload.get('context') or {}),
    )


class ActionDispatcher:
    """
    Interface for node action handlers.

    dispatch() receives the node and the resolved payload (resolved config
    plus nodeId, nodeType, flowId, runId, context, upstreamOutputs and
    variables) and returns an ActionResult.
    """

    def can_handle(self, node_type: str) -> bool:
        return True

    def function_name(self, node_type: str) -> Optional[str]:
        return None

    async def dispatch(
        self,
        node: FlowNode,
        payload: Dict[str, Any],
        node_outputs: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        raise NotImplementedError

    async def aclose(self):
        pass


class HttpActionDispatcher(ActionDispatcher):
    """
    Calls serverless functions over HTTP.

    Usage:
        async with HttpActionDispatcher() as dispatcher:
            result = await dispatcher.dispatch(node, payload)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or get_config()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.config.http_timeout,
            transport=transport,
        )

    def function_name(self, node_type: str) -> str:
        return function_name_for(node_type)

    def url_for(self, node_type: str) -> str:
        base = self.config.functions_base_url.rstrip('/')
        return f"{base}/functions/v1/{self.function_name(node_type)}"

    def _headers(self) -> Dict[str, str]:
        key = self.config.functions_api_key
        return {
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {key}',
            'apikey': key,
        }

    async def dispatch(
        self,
        node: FlowNode,
        payload: Dict[str, Any],
        node_outputs: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        url = self.url_for(node.type)
        logger.debug(f"POST {url} for node {node.id}")

        try:
            response = await self.client.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"Request to {url} failed: {e}")
            return _failure(str(e) or type(e).__name__, threw=True)

        try:
            body = response.json()
        except ValueError:
            body = {'raw': response.text}

        if not response.is_success:
            message = None
            if isinstance(body, dict):
                message = body.get('error') or body.get('message')
            if isinstance(message, dict):
                message = message.get('message')
            return _failure(str(message) if message else f"HTTP {response.status_code}", data=body)

        return ActionResult(success=True, data=body)

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()


class PluginActionDispatcher(ActionDispatcher):
    """Runs node types that have an in-process NodePlugin"""

    def __init__(self, registry: Optional[PluginRegistry] = None):
        if registry is None:
            from flowrun.pieces import registry
        self.registry = registry

    def can_handle(self, node_type: str) -> bool:
        return node_type in self.registry

    def function_name(self, node_type: str) -> Optional[str]:
        return None

    async def dispatch(
        self,
        node: FlowNode,
        payload: Dict[str, Any],
        node_outputs: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        plugin = self.registry.get(node.type)
        if plugin is None:
            return _failure(f"No plugin registered for type {node.type}")

        context = context_from_payload(payload, node_outputs)

        try:
            result = await plugin.execute(payload, context)
        except Exception as e:
            logger.error(f"Plugin {node.type} raised on node {node.id}: {e}")
            return _failure(str(e) or type(e).__name__, threw=True)

        if isinstance(result, ActionResult):
            return result
        return ActionResult(success=True, data=result if result is not None else {})


class RoutingDispatcher(ActionDispatcher):
    """Plugin first, HTTP function otherwise"""

    def __init__(
        self,
        plugins: Optional[PluginActionDispatcher] = None,
        http: Optional[ActionDispatcher] = None,
    ):
        self.plugins = plugins or PluginActionDispatcher()
        self.http = http

    def _target(self, node_type: str) -> Optional[ActionDispatcher]:
        if self.plugins.can_handle(node_type):
            return self.plugins
        return self.http

    def can_handle(self, node_type: str) -> bool:
        return self._target(node_type) is not None

    def function_name(self, node_type: str) -> Optional[str]:
        target = self._target(node_type)
        return target.function_name(node_type) if target else None

    async def dispatch(
        self,
        node: FlowNode,
        payload: Dict[str, Any],
        node_outputs: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        target = self._target(node.type)
        if target is None:
            return _failure(f"No action handler for type {node.type}")
        return await target.dispatch(node, payload, node_outputs)

    async def aclose(self):
        if self.http is not None:
            await self.http.aclose()


def default_dispatcher(config: Optional[EngineConfig] = None) -> RoutingDispatcher:
    """Built-in plugins with the functions endpoint as fallback"""
    return RoutingDispatcher(
        plugins=PluginActionDispatcher(),
        http=HttpActionDispatcher(config=config),
    )
