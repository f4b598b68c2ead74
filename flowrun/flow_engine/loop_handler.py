"""
Loop Handler - Handle iteration over arrays in flows

A loop node runs its body (a nested sub-flow) once per item:
- Items come from the resolved `items` setting, usually a binding such as
  {{fetchOrders.body.orders}}
- Each iteration is a bounded child run of the same executor
- The current item is exposed to the body under the item name:
  {{item.value}}, {{item.index}} (0-based), {{item.number}} (1-based)
- Results are collected into one aggregated output
"""

import logging
from typing import Dict, Any, Optional, List, Tuple, TYPE_CHECKING

from flowrun.flow_engine.config import EngineConfig, get_config
from flowrun.flow_engine.exceptions import FlowEngineError
from flowrun.flow_engine.models import FlowNode, FlowRunInput, NodeStatus
from flowrun.pieces.base import ActionResult

if TYPE_CHECKING:
    from flowrun.flow_engine.executor import FlowExecutor, CancellationToken
    from flowrun.flow_engine.dispatch import ActionDispatcher

logger = logging.getLogger(__name__)


class LoopHandler:
    """
    Handles loop/iteration logic in flows.

    Loop node config example:
    {
        "items": "{{fetchDeal.line_items}}",
        "itemName": "item",          # Binding root for the current item
        "maxIterations": 100,
        "body": {
            "nodes": [
                {
                    "id": "createInvoiceItem",
                    "data": {
                        "type": "http-request",
                        "config": {"body": "{{item.value}}"}
                    }
                }
            ],
            "edges": []
        }
    }
    """

    def __init__(self, executor: 'FlowExecutor', config: Optional[EngineConfig] = None):
        """
        Args:
            executor: Executor used for the child run of each iteration
            config: Engine config (iteration limit)
        """
        self.executor = executor
        self.config = config or get_config()

    @staticmethod
    def split_config(node: FlowNode) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Separate loop settings from the body definition.

        The body is kept raw: its bindings are resolved per iteration, not
        when the loop node itself is resolved.
        """
        settings = dict(node.config)
        body = settings.pop('body', None) or node.data.get('body') or {}
        return settings, body

    def get_loop_items(self, settings: Dict[str, Any]) -> List[Any]:
        """
        Get items to iterate over.

        Args:
            settings: Resolved loop settings

        Returns:
            List of items to iterate

        Raises:
            ValueError: If items did not resolve to a list
        """
        items = settings.get('items')

        if not isinstance(items, list):
            raise ValueError(f"Loop items is not a list: {type(items).__name__}")

        limit = self.config.max_loop_iterations
        requested = settings.get('maxIterations')
        if requested not in (None, ''):
            limit = min(limit, int(requested))

        # Apply iteration limit
        if len(items) > limit:
            logger.warning(f"Loop has {len(items)} items, limiting to {limit}")
            items = items[:limit]

        return items

    def create_item_context(
        self,
        item_name: str,
        item: Any,
        index: int
    ) -> Dict[str, Any]:
        """
        Create context for current loop iteration.

        Args:
            item_name: Binding root for the current item
            item: Current item
            index: Current index (0-based)

        Returns:
            Pseudo node output keyed by item name
        """
        return {
            item_name: {
                'value': item,
                'index': index,
                'number': index + 1,  # 1-based
            }
        }

    async def run(
        self,
        node: FlowNode,
        settings: Dict[str, Any],
        flow: FlowRunInput,
        node_outputs: Dict[str, Any],
        dispatcher: 'ActionDispatcher',
        cancel_token: Optional['CancellationToken'] = None,
    ) -> ActionResult:
        """
        Execute the loop body for every item.

        The loop fails when its items are not a list, when the body is not
        a valid graph, or when any iteration fails.
        """
        _, body = self.split_config(node)
        item_name = settings.get('itemName') or settings.get('item_name') or 'item'

        try:
            items = self.get_loop_items(settings)
        except (TypeError, ValueError) as e:
            return ActionResult(success=False, error={'message': str(e)})

        body_input = FlowRunInput.from_dict({
            'nodes': body.get('nodes') or [],
            'edges': body.get('edges') or [],
        })
        logger.info(f"Loop {node.id}: {len(items)} iterations over {len(body_input.nodes)} body nodes")

        results = []
        for index, item in enumerate(items):
            child = FlowRunInput(
                nodes=body_input.nodes,
                edges=body_input.edges,
                variables=flow.variables,
                secrets=flow.secrets,
                flow_id=flow.flow_id,
                context=flow.context,
            )
            seed = dict(node_outputs)
            seed.update(self.create_item_context(item_name, item, index))

            try:
                child_result = await self.executor.run(
                    child,
                    dispatcher=dispatcher,
                    cancel_token=cancel_token,
                    seed_outputs=seed,
                )
            except FlowEngineError as e:
                return ActionResult(success=False, error={'message': f"Loop body is invalid: {e.message}"})

            outputs = {
                r.node_id: r.output for r in child_result.node_results
                if r.status == NodeStatus.SUCCESS
            }
            results.append({
                'index': index,
                'item': item,
                'success': child_result.succeeded,
                'output': child_result.output if child_result.output is not None else outputs,
                'error': child_result.error,
            })

            if cancel_token is not None and cancel_token.cancelled:
                break

        aggregated = self.process_loop_results(results)

        failed = [r for r in results if not r['success']]
        if failed:
            first = failed[0]
            return ActionResult(
                success=False,
                data=aggregated,
                error={'message': f"{len(failed)} of {len(results)} iterations failed; "
                                  f"iteration {first['index']}: {first['error']}"},
            )

        return ActionResult(success=True, data=aggregated)

    def process_loop_results(
        self,
        results: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Process and aggregate loop results.

        Args:
            results: List of results from each iteration

        Returns:
            Aggregated results
        """
        return {
            'items': results,
            'count': len(results),
            'success_count': sum(1 for r in results if r.get('success', True)),
            'error_count': sum(1 for r in results if not r.get('success', True)),
        }
