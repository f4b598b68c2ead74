"""
Tests for the built-in pieces
"""

import json
import logging

import httpx
import pytest

import flowrun.pieces.http_request as http_request_piece
from flowrun.pieces import BUILTIN_PLUGINS, get_all_plugins, get_plugin, init_plugins, registry
from flowrun.pieces.base import ActionResult, ExecutionContext
from flowrun.pieces.condition import condition_handler
from flowrun.pieces.data_filter import data_filter_handler
from flowrun.pieces.logger import logger_handler
from flowrun.pieces.response import response_handler
from flowrun.pieces.set_variable import set_variable_handler
from flowrun.pieces.webhook_trigger import webhook_trigger_handler


@pytest.fixture
def ctx():
    return ExecutionContext(node_id='n1', node_type='test', flow_id='flow-1', run_id='run-1')


@pytest.fixture
def mock_http(monkeypatch, engine_config):
    """Route the HTTP Request piece through a mock transport"""
    seen = []
    responses = {'next': httpx.Response(200, json={'ok': True})}

    def handler(request):
        seen.append(request)
        return responses['next']

    def build_client(**kwargs):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(http_request_piece, 'build_client', build_client)
    return seen, responses


class TestRegistry:
    """Test plugin registration"""

    def test_all_builtins_registered(self):
        plugins = get_all_plugins()

        for plugin in BUILTIN_PLUGINS:
            assert plugins[plugin.type] is plugin

    def test_init_plugins_restores_removed_builtin(self):
        registry.unregister('logger')
        assert get_plugin('logger') is None

        init_plugins()

        assert get_plugin('logger') is not None

    def test_to_dict(self):
        data = get_plugin('http-request').to_dict()

        assert data['type'] == 'http-request'
        assert data['displayName'] == 'HTTP Request'
        assert data['properties'][0]['name'] == 'url'
        assert data['properties'][0]['type'] == 'SHORT_TEXT'


class TestCondition:
    """Test the condition piece"""

    @pytest.mark.asyncio
    async def test_true_branch(self, ctx):
        result = await condition_handler({'leftOperand': 200, 'operator': 'equals', 'rightOperand': '200'}, ctx)

        assert result.success is True
        assert result.data['result'] is True
        assert result.data['branch'] == 'true'

    @pytest.mark.asyncio
    async def test_matched_case(self, ctx):
        props = {'cases': [
            {'id': 'gold', 'label': 'Gold tier', 'leftOperand': 'gold', 'operator': 'equals', 'rightOperand': 'gold'},
        ]}

        result = await condition_handler(props, ctx)

        assert result.data['branch'] == 'gold'
        assert result.data['matchedCase'] == 'Gold tier'

    @pytest.mark.asyncio
    async def test_missing_operator_fails(self, ctx):
        result = await condition_handler({'leftOperand': 1}, ctx)

        assert result.success is False
        assert 'operator' in result.error_message


class TestSetVariable:
    """Test the set-variable piece"""

    @pytest.mark.asyncio
    async def test_named_output(self, ctx):
        assert await set_variable_handler({'variableName': 'total', 'value': 42}, ctx) == {'total': 42}

    @pytest.mark.asyncio
    async def test_default_name(self, ctx):
        assert await set_variable_handler({'value': 'x'}, ctx) == {'value': 'x'}


class TestDataFilter:
    """Test the data-filter piece"""

    @pytest.mark.asyncio
    async def test_filter_by_field(self, ctx):
        props = {
            'data': [{'status': 'paid'}, {'status': 'open'}, {'status': 'paid'}],
            'filterField': 'status',
            'filterValue': 'paid',
        }

        result = await data_filter_handler(props, ctx)

        assert result['count'] == 2
        assert all(item['status'] == 'paid' for item in result['filtered'])

    @pytest.mark.asyncio
    async def test_limit(self, ctx):
        result = await data_filter_handler({'data': list(range(10)), 'limit': '3'}, ctx)

        assert result == {'filtered': [0, 1, 2], 'count': 3}

    @pytest.mark.asyncio
    async def test_non_list_passes_through(self, ctx):
        result = await data_filter_handler({'data': {'a': 1}}, ctx)

        assert result == {'filtered': {'a': 1}, 'count': None}


class TestWebhookTrigger:
    """Test the webhook trigger piece"""

    @pytest.mark.asyncio
    async def test_surfaces_request(self):
        ctx = ExecutionContext(
            node_id='hook',
            node_type='webhook-trigger',
            flow_context={'request': {'body': {'email': 'a@b.c'}, 'method': 'PUT'}},
        )

        result = await webhook_trigger_handler({}, ctx)

        assert result.data['body'] == {'email': 'a@b.c'}
        assert result.data['payload'] == {'email': 'a@b.c'}
        assert result.data['method'] == 'PUT'
        assert result.data['headers'] == {}

    @pytest.mark.asyncio
    async def test_without_request(self, ctx):
        result = await webhook_trigger_handler({}, ctx)

        assert result.data['body'] == {}
        assert result.data['method'] == 'POST'


class TestResponse:
    """Test the response piece"""

    @pytest.mark.asyncio
    async def test_defaults(self, ctx):
        assert await response_handler({}, ctx) == {
            'statusCode': 200,
            'body': {},
            'contentType': 'application/json',
            'headers': {},
        }

    @pytest.mark.asyncio
    async def test_json_strings_parsed(self, ctx):
        props = {
            'statusCode': '201',
            'body': '{"id": 7}',
            'customHeaders': '{"X-Trace": "abc"}',
        }

        result = await response_handler(props, ctx)

        assert result['statusCode'] == 201
        assert result['body'] == {'id': 7}
        assert result['headers'] == {'X-Trace': 'abc'}

    @pytest.mark.asyncio
    async def test_plain_text_body(self, ctx):
        result = await response_handler({'body': 'done', 'contentType': 'text/plain', 'statusCode': 'abc'}, ctx)

        assert result['body'] == 'done'
        assert result['statusCode'] == 200


class TestLogger:
    """Test the logger piece"""

    @pytest.mark.asyncio
    async def test_logs_at_level(self, ctx, caplog):
        props = {'logLevel': 'warn', 'message': 'Order received', 'dataSource': {'id': 1}}

        with caplog.at_level(logging.DEBUG, logger='flowrun.pieces.logger'):
            result = await logger_handler(props, ctx)

        assert result == {'logged': True, 'level': 'warn', 'message': 'Order received', 'data': {'id': 1}}
        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert '[flow flow-1 run run-1 node n1] Order received' in record.getMessage()

    @pytest.mark.asyncio
    async def test_disabled(self, ctx):
        result = await logger_handler({'enabled': False, 'message': 'hidden'}, ctx)

        assert result == {'logged': False, 'message': 'Logging disabled'}


class TestHttpRequest:
    """Test the HTTP request piece"""

    @pytest.mark.asyncio
    async def test_get_request(self, ctx, mock_http):
        seen, _ = mock_http

        result = await http_request_piece.http_request_handler({'url': 'https://api.test/items'}, ctx)

        assert result.success is True
        assert result.data['status'] == 200
        assert result.data['statusText'] == 'OK'
        assert result.data['data'] == {'ok': True}
        assert seen[0].method == 'GET'
        assert str(seen[0].url) == 'https://api.test/items'

    @pytest.mark.asyncio
    async def test_post_json_with_api_key(self, ctx, mock_http):
        seen, _ = mock_http
        props = {
            'url': 'https://api.test/items',
            'method': 'post',
            'headers': '{"X-Source": "flow"}',
            'apiKey': 'k-123',
            'body': {'name': 'A'},
        }

        result = await http_request_piece.http_request_handler(props, ctx)

        assert result.success is True
        request = seen[0]
        assert request.method == 'POST'
        assert request.headers['authorization'] == 'Bearer k-123'
        assert request.headers['x-source'] == 'flow'
        assert json.loads(request.content) == {'name': 'A'}

    @pytest.mark.asyncio
    async def test_non_2xx_is_failure_with_output(self, ctx, mock_http):
        _, responses = mock_http
        responses['next'] = httpx.Response(404, json={'error': 'missing'})

        result = await http_request_piece.http_request_handler({'url': 'https://api.test/x'}, ctx)

        assert result.success is False
        assert result.error_message == 'HTTP 404 Not Found'
        assert result.data['status'] == 404
        assert result.data['data'] == {'error': 'missing'}

    @pytest.mark.asyncio
    @pytest.mark.parametrize('url,message', [
        ('', 'HTTP Request failed: URL is empty or not configured.'),
        (None, 'HTTP Request failed: URL is empty or not configured.'),
        ('{{env.API_URL}}', 'HTTP Request failed: Invalid URL format "{{env.API_URL}}".'),
        ('ftp://files.test', 'HTTP Request failed: Invalid URL format "ftp://files.test".'),
    ])
    async def test_invalid_url(self, ctx, mock_http, url, message):
        seen, _ = mock_http

        result = await http_request_piece.http_request_handler({'url': url}, ctx)

        assert result == ActionResult(success=False, error={'message': message})
        assert seen == []

    @pytest.mark.asyncio
    async def test_transport_error(self, ctx, monkeypatch, engine_config):
        def handler(request):
            raise httpx.ConnectTimeout('timed out', request=request)

        monkeypatch.setattr(
            http_request_piece,
            'build_client',
            lambda **kwargs: httpx.AsyncClient(transport=httpx.MockTransport(handler), **kwargs),
        )

        result = await http_request_piece.http_request_handler({'url': 'https://slow.test'}, ctx)

        assert result.success is False
        assert result.error_message == 'HTTP Request failed: timed out'
