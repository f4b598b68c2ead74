"""
Tests for action dispatchers
"""

import json

import httpx
import pytest

from flowrun.flow_engine.dispatch import (
    HttpActionDispatcher,
    PluginActionDispatcher,
    RoutingDispatcher,
    context_from_payload,
    function_name_for,
)
from flowrun.pieces.base import ActionResult, NodePlugin
from helpers import RecordingDispatcher, make_node


def http_dispatcher(engine_config, handler):
    return HttpActionDispatcher(config=engine_config, transport=httpx.MockTransport(handler))


class TestFunctionNames:
    """Test node type to function name mapping"""

    def test_mapped_types(self):
        assert function_name_for('http-request') == 'http-request'
        assert function_name_for('gmail-action') == 'gmail-proxy'

    def test_unmapped_type_uses_proxy_suffix(self):
        assert function_name_for('hubspot-get-contact') == 'hubspot-get-contact-proxy'


class TestHttpActionDispatcher:
    """Test the serverless functions client"""

    @pytest.mark.asyncio
    async def test_posts_payload_with_auth_headers(self, engine_config):
        seen = {}

        def handler(request):
            seen['url'] = str(request.url)
            seen['headers'] = request.headers
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, json={'sent': True})

        async with http_dispatcher(engine_config, handler) as dispatcher:
            result = await dispatcher.dispatch(make_node('n1', 'resend'), {'to': 'a@b.c', 'nodeId': 'n1'})

        assert result.success is True
        assert result.data == {'sent': True}
        assert seen['url'] == 'http://functions.test/functions/v1/resend-proxy'
        assert seen['headers']['authorization'] == 'Bearer test-key'
        assert seen['headers']['apikey'] == 'test-key'
        assert seen['body'] == {'to': 'a@b.c', 'nodeId': 'n1'}

    @pytest.mark.asyncio
    async def test_trailing_slash_in_base_url(self, engine_config):
        engine_config.functions_base_url = 'http://functions.test/'
        dispatcher = http_dispatcher(engine_config, lambda request: httpx.Response(200, json={}))

        assert dispatcher.url_for('stripe') == 'http://functions.test/functions/v1/stripe-proxy'
        await dispatcher.aclose()

    @pytest.mark.asyncio
    async def test_non_json_body_kept_raw(self, engine_config):
        handler = lambda request: httpx.Response(200, text='plain text')

        async with http_dispatcher(engine_config, handler) as dispatcher:
            result = await dispatcher.dispatch(make_node('n1', 'custom'), {})

        assert result.success is True
        assert result.data == {'raw': 'plain text'}

    @pytest.mark.asyncio
    @pytest.mark.parametrize('body,expected', [
        ({'error': 'Invalid API key'}, 'Invalid API key'),
        ({'message': 'Quota exceeded'}, 'Quota exceeded'),
        ({'error': {'message': 'Nested'}}, 'Nested'),
        ({'detail': 'other'}, 'HTTP 502'),
    ])
    async def test_error_message_extraction(self, engine_config, body, expected):
        handler = lambda request: httpx.Response(502, json=body)

        async with http_dispatcher(engine_config, handler) as dispatcher:
            result = await dispatcher.dispatch(make_node('n1', 'custom'), {})

        assert result.success is False
        assert result.error_message == expected
        assert result.error['threw'] is False
        assert result.data == body

    @pytest.mark.asyncio
    async def test_transport_error_counts_as_thrown(self, engine_config):
        def handler(request):
            raise httpx.ConnectError('connection refused', request=request)

        async with http_dispatcher(engine_config, handler) as dispatcher:
            result = await dispatcher.dispatch(make_node('n1', 'custom'), {})

        assert result.success is False
        assert result.error['threw'] is True
        assert 'connection refused' in result.error_message

    @pytest.mark.asyncio
    async def test_shared_client_not_closed(self, engine_config):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
        dispatcher = HttpActionDispatcher(config=engine_config, client=client)

        await dispatcher.aclose()

        assert client.is_closed is False
        await client.aclose()


class FakeRegistry:
    """Standalone registry so tests leave the shared one alone"""

    def __init__(self, *plugins):
        self.plugins = {plugin.type: plugin for plugin in plugins}

    def get(self, node_type):
        return self.plugins.get(node_type)

    def __contains__(self, node_type):
        return node_type in self.plugins


def plugin(node_type, handler):
    return NodePlugin(
        type=node_type,
        display_name=node_type,
        description='',
        properties=[],
        handler=handler,
    )


class TestPluginActionDispatcher:
    """Test in-process dispatch"""

    @pytest.mark.asyncio
    async def test_dict_return_wrapped(self):
        async def handler(props, ctx):
            return {'doubled': props['n'] * 2, 'node': ctx.node_id}

        dispatcher = PluginActionDispatcher(FakeRegistry(plugin('double', handler)))
        result = await dispatcher.dispatch(make_node('n1', 'double'), {'n': 4, 'nodeId': 'n1'})

        assert result == ActionResult(success=True, data={'doubled': 8, 'node': 'n1'})

    @pytest.mark.asyncio
    async def test_raise_becomes_thrown_failure(self):
        async def handler(props, ctx):
            raise KeyError('missing')

        dispatcher = PluginActionDispatcher(FakeRegistry(plugin('bad', handler)))
        result = await dispatcher.dispatch(make_node('n1', 'bad'), {})

        assert result.success is False
        assert result.error['threw'] is True

    @pytest.mark.asyncio
    async def test_unregistered_type(self):
        dispatcher = PluginActionDispatcher(FakeRegistry())

        assert dispatcher.can_handle('nope') is False
        result = await dispatcher.dispatch(make_node('n1', 'nope'), {})
        assert result.success is False

    def test_default_registry_has_builtins(self):
        dispatcher = PluginActionDispatcher()

        for node_type in ('condition', 'set-variable', 'http-request', 'response', 'logger'):
            assert dispatcher.can_handle(node_type)

    def test_context_from_payload(self):
        context = context_from_payload(
            {
                'nodeId': 'n2',
                'nodeType': 'logger',
                'flowId': 'f',
                'runId': 'r',
                'variables': {'a': 1},
                'upstreamOutputs': {'n1': {}},
                'context': {'request': {}},
            },
            {'n1': {}},
        )

        assert context.node_id == 'n2'
        assert context.upstream_outputs == {'n1': {}}
        assert context.node_outputs == {'n1': {}}
        assert context.flow_context == {'request': {}}


class TestRoutingDispatcher:
    """Test plugin-first routing"""

    @pytest.mark.asyncio
    async def test_plugin_preferred_then_http(self):
        async def handler(props, ctx):
            return {'local': True}

        http = RecordingDispatcher({'remote': {'remote': True}})
        dispatcher = RoutingDispatcher(PluginActionDispatcher(FakeRegistry(plugin('local', handler))), http)

        local = await dispatcher.dispatch(make_node('a', 'local'), {})
        remote = await dispatcher.dispatch(make_node('remote', 'stripe'), {})

        assert local.data == {'local': True}
        assert remote.data == {'remote': True}
        assert http.called_ids == ['remote']
        assert dispatcher.function_name('local') is None
        assert dispatcher.function_name('stripe') == 'stripe-proxy'

    @pytest.mark.asyncio
    async def test_without_http_fallback(self):
        dispatcher = RoutingDispatcher(PluginActionDispatcher(FakeRegistry()))

        assert dispatcher.can_handle('stripe') is False
        result = await dispatcher.dispatch(make_node('a', 'stripe'), {})
        assert result.success is False
        await dispatcher.aclose()
