"""
Data Context Tracker - bounded samples of each node's last output

Feeds binding autocompletion and loop-source discovery. Values are sampled
so arbitrarily large outputs stay cheap to keep around:
- arrays keep their first `sample_array_items` items (default 5)
- objects keep `sample_max_keys` properties per level (default 15)
- nesting stops at `sample_max_depth` levels (default 3)

One tracker belongs to one run (or one editing session). Never share an
instance between concurrent runs.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from flowrun.flow_engine.config import EngineConfig, get_config
from flowrun.flow_engine.models import utcnow

logger = logging.getLogger(__name__)

DEPTH_PLACEHOLDER_OBJECT = '[Object]'
DEPTH_PLACEHOLDER_ARRAY = '[Array]'


def infer_type(value: Any) -> str:
    """JSON-ish type name of a value"""
    if isinstance(value, (list, tuple)):
        return 'array'
    if value is None:
        return 'null'
    if isinstance(value, dict):
        return 'object'
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, (int, float)):
        return 'number'
    if isinstance(value, str):
        return 'string'
    return type(value).__name__


def describe(value: Any) -> str:
    """One-line human readable summary of a value"""
    value_type = infer_type(value)
    if value_type == 'array':
        return f"Array with {len(value)} items"
    if value_type == 'object':
        keys = list(value.keys())
        preview = ', '.join(str(k) for k in keys[:3])
        suffix = '…' if len(keys) > 3 else ''
        if not keys:
            return "Object with 0 properties"
        return f"Object with {len(keys)} properties: {preview}{suffix}"
    if value_type == 'null':
        return "Empty value"
    if value_type == 'string':
        return f"Text ({len(value)} characters)"
    if value_type == 'boolean':
        return f"Boolean: {str(value).lower()}"
    if value_type == 'number':
        return f"Number: {value}"
    return f"Value of type {value_type}"


@dataclass
class DataSample:
    """Size/depth-bounded representative of a true value"""
    value: Any
    type: str
    description: str
    sample_count: Optional[int] = None
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'value': self.value,
            'type': self.type,
            'description': self.description,
            'sampleCount': self.sample_count,
            'truncated': self.truncated,
        }


@dataclass
class NodeDataContext:
    """Cached outputs of one node"""
    node_id: str
    node_name: str
    outputs: Dict[str, DataSample] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nodeId': self.node_id,
            'nodeName': self.node_name,
            'outputs': {k: s.to_dict() for k, s in self.outputs.items()},
            'timestamp': self.timestamp.isoformat(),
        }


class DataContextTracker:
    """
    Per-run cache of node outputs.

    Usage:
        tracker = DataContextTracker()
        tracker.store('fetch', 'Fetch Orders', {'items': [...]})
        tracker.array_fields_of('fetch')
        tracker.suggestions_for(['fetch'])
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        config = config or get_config()
        self.max_array_items = config.sample_array_items
        self.max_depth = config.sample_max_depth
        self.max_keys = config.sample_max_keys
        self.loop_sample_items = config.loop_sample_items
        self._contexts: Dict[str, NodeDataContext] = {}

    def store(self, node_id: str, node_name: str, outputs: Any) -> NodeDataContext:
        """Replace the entry for node_id with freshly sampled outputs"""
        if not isinstance(outputs, dict):
            outputs = {'value': outputs}

        context = NodeDataContext(
            node_id=node_id,
            node_name=node_name or node_id,
            outputs={key: self.sample(value) for key, value in outputs.items()},
        )
        self._contexts[node_id] = context
        logger.debug(f"Stored data context for {node_id} ({len(context.outputs)} outputs)")
        return context

    def get(self, node_id: str) -> Optional[NodeDataContext]:
        return self._contexts.get(node_id)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)

    def sample(self, value: Any) -> DataSample:
        """Build the bounded sample of one output value"""
        sampled, truncated = self._bound(value, 0)
        return DataSample(
            value=sampled,
            type=infer_type(value),
            description=describe(value),
            sample_count=len(value) if isinstance(value, (list, tuple)) else None,
            truncated=truncated,
        )

    def _bound(self, value: Any, depth: int):
        if isinstance(value, (list, tuple)):
            if depth >= self.max_depth:
                return DEPTH_PLACEHOLDER_ARRAY, True
            truncated = len(value) > self.max_array_items
            items = []
            for item in list(value)[:self.max_array_items]:
                bounded, inner = self._bound(item, depth + 1)
                truncated = truncated or inner
                items.append(bounded)
            return items, truncated

        if isinstance(value, dict):
            if depth >= self.max_depth:
                return DEPTH_PLACEHOLDER_OBJECT, True
            truncated = len(value) > self.max_keys
            bounded_dict = {}
            for key in list(value.keys())[:self.max_keys]:
                bounded, inner = self._bound(value[key], depth + 1)
                truncated = truncated or inner
                bounded_dict[key] = bounded
            return bounded_dict, truncated

        return value, False

    def array_fields_of(self, node_id: str) -> List[Dict[str, Any]]:
        """Outputs of node_id that are arrays (loop source candidates)"""
        context = self._contexts.get(node_id)
        if not context:
            return []

        return [
            {
                'name': key,
                'sample': list(sample.value)[:self.loop_sample_items],
                'description': sample.description,
            }
            for key, sample in context.outputs.items()
            if sample.type == 'array'
        ]

    def suggestions_for(self, connected_node_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Flatten outputs of upstream nodes into binding suggestions"""
        suggestions = []
        for node_id in connected_node_ids:
            context = self._contexts.get(node_id)
            if not context:
                continue
            for key, sample in context.outputs.items():
                suggestions.append({
                    'label': f'{context.node_name}.{key}',
                    'value': f'{{{{{node_id}.{key}}}}}',
                    'description': sample.description,
                    'sample': sample.value,
                    'type': sample.type,
                })
        return suggestions

    def clear(self, node_id: str):
        self._contexts.pop(node_id, None)

    def clear_all(self):
        self._contexts.clear()

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Serializable view of every entry"""
        return {node_id: ctx.to_dict() for node_id, ctx in self._contexts.items()}
