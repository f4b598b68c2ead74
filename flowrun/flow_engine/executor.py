"""
Flow Executor - Main orchestrator for flow execution

Responsibilities:
- Validate and order the graph (Kahn's algorithm)
- Resolve each node's bindings
- Dispatch nodes to their action handler
- Handle branching, disabled nodes and loops
- Collect per-node results into a FlowRunResult

Node-level failures are captured in the result; only structural problems
(malformed graph, cycle, node type without a handler) raise, and they raise
before any node starts.
"""

import asyncio
import logging
from typing import Dict, Any, Optional, List, Callable, Union
from uuid import uuid4

from flowrun.flow_engine.branching import active_inbound
from flowrun.flow_engine.config import EngineConfig, get_config
from flowrun.flow_engine.data_context import DataContextTracker
from flowrun.flow_engine.dispatch import ActionDispatcher, default_dispatcher
from flowrun.flow_engine.exceptions import (
    FlowCancelledError,
    FlowEngineError,
    NodeExecutionError,
    NodeTimeoutError,
    UnknownNodeTypeError,
)
from flowrun.flow_engine.graph import build_execution_order, execution_levels
from flowrun.flow_engine.loop_handler import LoopHandler
from flowrun.flow_engine.models import (
    SECRET_MASK,
    ErrorBehavior,
    FlowNode,
    FlowRunInput,
    FlowRunResult,
    NodeKind,
    NodeRunResult,
    NodeStatus,
    RunStatus,
    SkipReason,
    utcnow,
)
from flowrun.flow_engine.variable_resolver import MissPolicy, VariableResolver, ENV_PREFIX
from flowrun.pieces.base import ActionResult

logger = logging.getLogger(__name__)


class CancellationToken:
    """Run-level cancellation, checked before each node starts"""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def redact_input(config: Any, resolved: Any) -> Any:
    """
    Resolved config with every resolved env.* binding replaced by the mask,
    so run records never echo secret values. Misses stay as they resolved.
    """
    if isinstance(config, str):
        expression = VariableResolver.parse_binding(config)
        if expression and expression.split('.', 1)[0] == ENV_PREFIX and resolved not in (None, config):
            return SECRET_MASK
        return resolved
    if isinstance(config, dict) and isinstance(resolved, dict):
        return {k: redact_input(config.get(k), v) for k, v in resolved.items()}
    if isinstance(config, (list, tuple)) and isinstance(resolved, list):
        return [redact_input(c, r) for c, r in zip(config, resolved)]
    return resolved


class _RunState:
    """Mutable bookkeeping for one run"""

    def __init__(self, flow: FlowRunInput, run_id: str, tracker: DataContextTracker,
                 seed_outputs: Optional[Dict[str, Any]], env_miss_policy: MissPolicy):
        self.flow = flow
        self.run_id = run_id
        self.tracker = tracker
        self.nodes_by_id = {node.id: node for node in flow.nodes}
        self.outputs: Dict[str, Any] = dict(seed_outputs or {})
        self.results: Dict[str, NodeRunResult] = {}
        self.node_results: List[NodeRunResult] = []
        self.partial_errors: List[Dict[str, str]] = []
        self.final_output: Any = None
        self.error: Optional[str] = None
        self.variables = flow.variables_by_name()
        self.resolver = VariableResolver(
            secrets=flow.secrets,
            flow_variables=flow.variables,
            node_outputs=self.outputs,
            env_miss_policy=env_miss_policy,
        )

    def record(self, result: NodeRunResult):
        self.results[result.node_id] = result
        self.node_results.append(result)


class FlowExecutor:
    """
    Executes flow graphs.

    Usage:
        executor = FlowExecutor(dispatcher=default_dispatcher())
        result = await executor.run(FlowRunInput.from_dict(definition))
        if not result.succeeded:
            print(result.first_error().error)
    """

    def __init__(
        self,
        dispatcher: Optional[ActionDispatcher] = None,
        config: Optional[EngineConfig] = None,
        tracker_factory: Optional[Callable[[], DataContextTracker]] = None,
        env_miss_policy: MissPolicy = MissPolicy.LITERAL,
    ):
        """
        Args:
            dispatcher: Default action dispatcher for runs
            config: Engine config (timeouts, parallel mode, sampling)
            tracker_factory: Builds the per-run data context tracker
            env_miss_policy: Result of env.* bindings that do not resolve
        """
        self.dispatcher = dispatcher
        self.config = config or get_config()
        self.tracker_factory = tracker_factory or (lambda: DataContextTracker(self.config))
        self.env_miss_policy = MissPolicy(env_miss_policy)
        self.loop_handler = LoopHandler(self, self.config)

    async def run(
        self,
        flow: FlowRunInput,
        dispatcher: Optional[ActionDispatcher] = None,
        cancel_token: Optional[CancellationToken] = None,
        tracker: Optional[DataContextTracker] = None,
        seed_outputs: Optional[Dict[str, Any]] = None,
        run_id: Optional[str] = None,
    ) -> FlowRunResult:
        """
        Execute a flow.

        Args:
            flow: Nodes, edges, variables, secrets and request context
            dispatcher: Action dispatcher (defaults to the executor's)
            cancel_token: Stops the run before the next node when cancelled
            tracker: Data context tracker to fill (a fresh one by default)
            seed_outputs: Outputs visible to bindings before any node runs
                (loop iterations use this for the current item)
            run_id: Run id (a fresh UUID by default)

        Returns:
            FlowRunResult, also when nodes failed

        Raises:
            GraphValidationError: Malformed graph, cycle, or a node type
                without an action handler
        """
        dispatcher = dispatcher or self.dispatcher
        if dispatcher is None:
            raise FlowEngineError("No action dispatcher configured", flow_id=flow.flow_id)

        run_id = run_id or str(uuid4())
        started_at = utcnow()

        try:
            levels = self._schedule(flow)
            self._check_handlers(flow, dispatcher)
        except FlowEngineError as e:
            e.flow_id = e.flow_id or flow.flow_id
            e.run_id = run_id
            raise

        state = _RunState(
            flow,
            run_id,
            tracker if tracker is not None else self.tracker_factory(),
            seed_outputs,
            self.env_miss_policy,
        )
        logger.info(f"Starting run {run_id} for flow {flow.flow_id}: {len(flow.nodes)} nodes")

        stopped = False
        for level in levels:
            if cancel_token is not None and cancel_token.cancelled:
                state.error = FlowCancelledError(run_id=run_id).message
                logger.warning(f"Run {run_id} cancelled")
                break

            if len(level) == 1:
                level_results = [await self._execute_node(level[0], state, dispatcher, cancel_token)]
            else:
                level_results = await asyncio.gather(
                    *(self._execute_node(node, state, dispatcher, cancel_token) for node in level)
                )

            for node, (result, message) in zip(level, level_results):
                state.record(result)
                if result.status != NodeStatus.ERROR:
                    continue

                if node.error_behavior == ErrorBehavior.CONTINUE:
                    state.partial_errors.append({
                        'nodeId': node.id,
                        'nodeType': node.type,
                        'error': message,
                    })
                    state.error = state.error or message
                    continue

                # Nodes of the same level already ran; record them all
                if not stopped:
                    state.error = message
                    stopped = True

            if stopped:
                break

        finished_at = utcnow()
        status = RunStatus.ERROR if state.error else RunStatus.SUCCESS
        logger.info(
            f"Run {run_id} finished with {status.value} in "
            f"{int((finished_at - started_at).total_seconds() * 1000)}ms"
        )

        return FlowRunResult(
            run_id=run_id,
            status=status,
            started_at=started_at,
            finished_at=finished_at,
            flow_id=flow.flow_id,
            node_results=state.node_results,
            error=state.error,
            output=state.final_output,
            partial_errors=state.partial_errors,
        )

    def _schedule(self, flow: FlowRunInput) -> List[List[FlowNode]]:
        """Flat order as one-node levels, or DAG levels in parallel mode"""
        if self.config.parallel:
            return execution_levels(flow.nodes, flow.edges)
        return [[node] for node in build_execution_order(flow.nodes, flow.edges)]

    def _check_handlers(self, flow: FlowRunInput, dispatcher: ActionDispatcher):
        for node in flow.nodes:
            if node.disabled or node.kind == NodeKind.LOOP:
                continue
            if not dispatcher.can_handle(node.type):
                raise UnknownNodeTypeError(node.id, node.type, flow_id=flow.flow_id)

    def _skipped(self, node: FlowNode, reason: SkipReason) -> NodeRunResult:
        now = utcnow()
        logger.info(f"Skipping node {node.id} ({node.type}): {reason.value}")
        return NodeRunResult(
            node_id=node.id,
            node_type=node.type,
            status=NodeStatus.SKIPPED,
            started_at=now,
            finished_at=now,
            skip_reason=reason,
        )

    async def _execute_node(
        self,
        node: FlowNode,
        state: _RunState,
        dispatcher: ActionDispatcher,
        cancel_token: Optional[CancellationToken],
    ):
        """
        Run one node.

        Returns:
            (NodeRunResult, error message or None)
        """
        flow = state.flow

        active, inbound = active_inbound(node.id, flow.edges, state.nodes_by_id, state.results, state.outputs)
        if inbound and not active:
            return self._skipped(node, SkipReason.BRANCH_NOT_TAKEN), None

        if node.disabled:
            return self._skipped(node, SkipReason.DISABLED), None

        upstream_outputs = {edge.source: state.outputs.get(edge.source) for edge in inbound}

        if node.kind == NodeKind.LOOP:
            raw_config, _ = LoopHandler.split_config(node)
        else:
            raw_config = node.config
        resolved = state.resolver.resolve(raw_config)

        payload = dict(resolved)
        payload.update({
            'nodeId': node.id,
            'nodeType': node.type,
            'flowId': flow.flow_id,
            'runId': state.run_id,
            'context': flow.context,
            'upstreamOutputs': upstream_outputs,
            'variables': state.variables,
        })

        function_name = None if node.kind == NodeKind.LOOP else dispatcher.function_name(node.type)
        logger.info(f"Executing node {node.id} ({node.type})")

        started_at = utcnow()
        result, message = await self._dispatch(node, resolved, payload, state, dispatcher, cancel_token)
        finished_at = utcnow()

        if message is None:
            output = result.data if result.data is not None else {}
            state.outputs[node.id] = output
            state.tracker.store(node.id, node.label, output)
            if node.kind == NodeKind.RESPONSE:
                state.final_output = output
            status = NodeStatus.SUCCESS
        else:
            logger.error(message)
            output = result.data if result is not None else None
            if node.error_behavior == ErrorBehavior.CONTINUE:
                state.outputs[node.id] = {'error': message, 'success': False}
            status = NodeStatus.ERROR

        return NodeRunResult(
            node_id=node.id,
            node_type=node.type,
            status=status,
            started_at=started_at,
            finished_at=finished_at,
            function_name=function_name,
            input=redact_input(raw_config, resolved),
            output=output,
            error=message,
        ), message

    async def _dispatch(
        self,
        node: FlowNode,
        resolved: Dict[str, Any],
        payload: Dict[str, Any],
        state: _RunState,
        dispatcher: ActionDispatcher,
        cancel_token: Optional[CancellationToken],
    ):
        """
        Call the action handler under the node deadline.

        Returns:
            (ActionResult or None, error message or None)
        """
        if node.kind == NodeKind.LOOP:
            call = self.loop_handler.run(node, resolved, state.flow, state.outputs, dispatcher, cancel_token)
        else:
            call = dispatcher.dispatch(node, payload, state.outputs)

        timeout = self.config.node_timeout
        try:
            if timeout and timeout > 0:
                result = await asyncio.wait_for(call, timeout=timeout)
            else:
                result = await call
        except asyncio.TimeoutError:
            return None, str(NodeTimeoutError(node.id, node.type, timeout))
        except Exception as e:
            return None, str(NodeExecutionError(node.id, node.type, str(e) or type(e).__name__, threw=True))

        if not isinstance(result, ActionResult):
            result = ActionResult(success=True, data=result)

        if result.success:
            return result, None

        threw = bool(result.error and result.error.get('threw'))
        return result, str(NodeExecutionError(node.id, node.type, result.error_message, threw=threw))


async def run_flow(
    flow: Union[FlowRunInput, Dict[str, Any]],
    dispatcher: Optional[ActionDispatcher] = None,
    config: Optional[EngineConfig] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> FlowRunResult:
    """
    Run a flow definition once.

    Builds the default dispatcher (built-in pieces, then the functions
    endpoint) when none is given and closes it afterwards.
    """
    if isinstance(flow, dict):
        flow = FlowRunInput.from_dict(flow)

    owns_dispatcher = dispatcher is None
    dispatcher = dispatcher or default_dispatcher(config)
    try:
        executor = FlowExecutor(dispatcher=dispatcher, config=config)
        return await executor.run(flow, cancel_token=cancel_token)
    finally:
        if owns_dispatcher:
            await dispatcher.aclose()
