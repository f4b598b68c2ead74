"""
Shared builders and doubles for flow engine tests
"""

from typing import Any, Callable, Dict, List, Optional, Union

from flowrun.flow_engine.dispatch import ActionDispatcher
from flowrun.flow_engine.models import FlowEdge, FlowNode, FlowRunInput
from flowrun.pieces.base import ActionResult


def make_node(node_id: str, node_type: str = 'transform', label: Optional[str] = None, **data) -> FlowNode:
    """Build a node in the builder's shape"""
    raw = {'id': node_id, 'type': 'custom', 'data': {'type': node_type, **data}}
    if label is not None:
        raw['data']['label'] = label
    return FlowNode.from_dict(raw)


def make_edge(source: str, target: str, **extra) -> FlowEdge:
    return FlowEdge.from_dict({'source': source, 'target': target, **extra})


def make_flow(nodes: List[FlowNode], edges: Optional[List[FlowEdge]] = None, **kwargs) -> FlowRunInput:
    return FlowRunInput(nodes=nodes, edges=edges or [], **kwargs)


Outcome = Union[ActionResult, Dict[str, Any], Exception, Callable]


class RecordingDispatcher(ActionDispatcher):
    """
    Dispatcher double.

    outcomes maps a node id to an ActionResult, a plain output dict, an
    exception to raise, or an async callable(node, payload). Unlisted nodes
    succeed with {'ok': True}.
    """

    def __init__(self, outcomes: Optional[Dict[str, Outcome]] = None, known_types=None):
        self.outcomes = outcomes or {}
        self.known_types = known_types
        self.calls: List[Dict[str, Any]] = []

    def can_handle(self, node_type: str) -> bool:
        return self.known_types is None or node_type in self.known_types

    def function_name(self, node_type: str) -> str:
        return f'{node_type}-proxy'

    def payload_for(self, node_id: str) -> Dict[str, Any]:
        return next(call['payload'] for call in self.calls if call['node_id'] == node_id)

    @property
    def called_ids(self) -> List[str]:
        return [call['node_id'] for call in self.calls]

    async def dispatch(self, node, payload, node_outputs=None):
        self.calls.append({'node_id': node.id, 'payload': payload})
        outcome = self.outcomes.get(node.id)

        if outcome is None:
            return ActionResult(success=True, data={'ok': True})
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, ActionResult):
            return outcome
        if callable(outcome):
            return await outcome(node, payload)
        return ActionResult(success=True, data=outcome)


