"""
Flow Runs API - Routes for running and inspecting flow definitions

Endpoints:
- POST /api/v1/flow-runs - Run a flow definition, return the run report
- POST /api/v1/flow-runs/validate - Validate a graph, return its execution order
- POST /api/v1/flow-runs/resolve - Preview binding resolution
"""

from flask import Blueprint, current_app, request, jsonify
import logging

from flowrun.flow_engine.aliases import AliasRegistry
from flowrun.flow_engine.data_context import DataContextTracker
from flowrun.flow_engine.dispatch import PluginActionDispatcher, default_dispatcher, function_name_for
from flowrun.flow_engine.exceptions import FlowEngineError, GraphValidationError
from flowrun.flow_engine.executor import FlowExecutor, redact_input
from flowrun.flow_engine.graph import build_execution_order, execution_levels
from flowrun.flow_engine.models import FlowRunInput
from flowrun.flow_engine.variable_resolver import ENV_PREFIX, MissPolicy, VariableResolver, extract_bindings

logger = logging.getLogger(__name__)

flow_runs_bp = Blueprint('flow_runs', __name__, url_prefix='/api/v1/flow-runs')


def _flow_input(data: dict) -> FlowRunInput:
    """
    Build the run input from a request body.

    Stored variables and secrets of flow_id come first; values sent in the
    request shadow them.
    """
    flow = FlowRunInput.from_dict(data)
    store = current_app.extensions['flowrun.variable_store']

    variables, secrets = store.load(flow.flow_id)
    secrets.update(flow.secrets)
    flow.variables = variables + flow.variables
    flow.secrets = secrets
    return flow


@flow_runs_bp.route('', methods=['POST'])
async def create_flow_run():
    """
    Run a flow definition.

    Body:
        {
            "flow_id": "...",           # optional, selects stored variables
            "nodes": [...],
            "edges": [...],
            "variables": [{"name": "...", "value": ...}],
            "secrets": {"NAME": "..."},
            "context": {"request": {...}}
        }

    Query params:
        include_context: Add the run's data context samples to the response
    """
    data = request.get_json(silent=True) or {}
    if not data.get('nodes'):
        return jsonify({'error': 'nodes is required'}), 400

    dispatcher = current_app.extensions.get('flowrun.dispatcher')
    owns_dispatcher = dispatcher is None
    if owns_dispatcher:
        dispatcher = default_dispatcher()

    tracker = DataContextTracker()

    try:
        flow = _flow_input(data)
        executor = FlowExecutor(dispatcher=dispatcher)
        result = await executor.run(flow, tracker=tracker)

    except FlowEngineError as e:
        logger.error(f"Flow run rejected: {e}")
        return jsonify({
            'error': e.message,
            'nodeIds': getattr(e, 'node_ids', []),
        }), 400

    except Exception as e:
        logger.error(f"Error running flow: {e}")
        return jsonify({'error': str(e)}), 500

    finally:
        if owns_dispatcher:
            await dispatcher.aclose()

    response = result.to_dict()
    if request.args.get('include_context') in ('1', 'true', 'yes'):
        response['dataContext'] = tracker.snapshot()

    return jsonify(response), 200


@flow_runs_bp.route('/validate', methods=['POST'])
def validate_flow():
    """
    Validate a flow graph without running it.

    Returns the execution order, the DAG levels, the handler of each node
    and any variable or env binding that cannot resolve.
    """
    data = request.get_json(silent=True) or {}

    try:
        flow = _flow_input(data)
        ordered = build_execution_order(flow.nodes, flow.edges)
        levels = execution_levels(flow.nodes, flow.edges)

    except GraphValidationError as e:
        return jsonify({
            'valid': False,
            'error': e.message,
            'nodeIds': e.node_ids,
        }), 400

    except Exception as e:
        logger.error(f"Error validating flow: {e}")
        return jsonify({'error': str(e)}), 500

    plugins = PluginActionDispatcher()
    resolver = VariableResolver(secrets=flow.secrets, flow_variables=flow.variables)

    handlers = {}
    unresolved = {}
    for node in ordered:
        handlers[node.id] = 'plugin' if plugins.can_handle(node.type) else function_name_for(node.type)

        # Node output bindings can only be checked during a run
        static_misses = [
            expr for expr in extract_bindings(node.config)
            if ('.' not in expr or expr.startswith(ENV_PREFIX + '.')) and not resolver.lookup(expr)[0]
        ]
        if static_misses:
            unresolved[node.id] = static_misses

    return jsonify({
        'valid': True,
        'order': [node.id for node in ordered],
        'levels': [[node.id for node in level] for level in levels],
        'handlers': handlers,
        'unresolved': unresolved,
    }), 200


@flow_runs_bp.route('/resolve', methods=['POST'])
def resolve_bindings():
    """
    Preview how a value resolves.

    Body:
        {
            "value": {...} | "{{...}}",
            "flow_id": "...",
            "variables": [...],
            "secrets": {...},
            "outputs": {"nodeId": {...}},   # node outputs from an earlier run
            "nodes": [...]                  # for display aliases
        }
    """
    data = request.get_json(silent=True) or {}
    if 'value' not in data:
        return jsonify({'error': 'value is required'}), 400

    try:
        flow = _flow_input(data)
        policy = MissPolicy(current_app.config.get('RESOLVE_MISS_POLICY', MissPolicy.NULL.value))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    resolver = VariableResolver(
        secrets=flow.secrets,
        flow_variables=flow.variables,
        node_outputs=dict(data.get('outputs') or {}),
        env_miss_policy=policy,
    )
    aliases = AliasRegistry(flow.nodes)

    value = data['value']
    return jsonify({
        'resolved': redact_input(value, resolver.resolve(value)),
        'unresolved': resolver.validate(value),
        'display': {
            expr: aliases.format_for_display(f'{{{{{expr}}}}}')
            for expr in extract_bindings(value)
        },
    }), 200
