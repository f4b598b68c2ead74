"""
Alias Registry - human readable names for node ids

Bindings are stored with opaque node ids ({{node-7f3a.body.email}}) but shown
to users with display aliases ({{Webhook.body.email}}). Aliases are derived
from node labels and never take part in execution.
"""

import logging
from typing import Dict, Iterable, Optional

from flowrun.flow_engine.models import FlowNode
from flowrun.flow_engine.paths import join_path, split_path
from flowrun.flow_engine.variable_resolver import ENV_PREFIX, VariableResolver

logger = logging.getLogger(__name__)


class AliasRegistry:
    """
    Bidirectional node id <-> alias mapping.

    Nodes are walked in ascending id order; the first node with a label
    keeps it, later ones get " 2", " 3", ... so rebuilding from the same
    node set always yields the same aliases.
    """

    def __init__(self, nodes: Optional[Iterable[FlowNode]] = None):
        self._alias_by_id: Dict[str, str] = {}
        self._id_by_alias: Dict[str, str] = {}
        if nodes is not None:
            self.rebuild(nodes)

    def rebuild(self, nodes: Iterable[FlowNode]):
        """Recompute every alias from the current node set"""
        alias_by_id: Dict[str, str] = {}
        id_by_alias: Dict[str, str] = {}
        label_counts: Dict[str, int] = {}

        for node in sorted(nodes, key=lambda n: n.id):
            label = (node.label or node.id).strip() or node.id
            count = label_counts.get(label, 0) + 1
            alias = label if count == 1 else f'{label} {count}'
            # A literal label like "Webhook 2" may already hold the suffixed name
            while alias in id_by_alias:
                count += 1
                alias = f'{label} {count}'
            label_counts[label] = count

            alias_by_id[node.id] = alias
            id_by_alias[alias] = node.id

        self._alias_by_id = alias_by_id
        self._id_by_alias = id_by_alias
        logger.debug(f"Rebuilt alias registry with {len(alias_by_id)} nodes")

    def aliases(self) -> Dict[str, str]:
        """node id -> alias"""
        return dict(self._alias_by_id)

    def display_alias_of(self, node_id: str) -> str:
        return self._alias_by_id.get(node_id, node_id)

    def node_id_of(self, alias: str) -> Optional[str]:
        return self._id_by_alias.get(alias)

    def alias_to_path(self, alias_path: str) -> Optional[str]:
        """
        "Webhook 2.body.items[0]" -> "node-b.body.items[0]"

        Aliases may contain dots, so the longest alias that prefixes the
        path wins. Returns None when no alias matches.
        """
        for alias in sorted(self._id_by_alias, key=len, reverse=True):
            if alias_path == alias:
                return self._id_by_alias[alias]
            if alias_path.startswith(alias + '.'):
                rest = alias_path[len(alias) + 1:]
                return join_path([self._id_by_alias[alias]] + split_path(rest))
        return None

    def path_to_alias(self, node_id_path: str) -> str:
        """"node-b.body.items[0]" -> "Webhook 2.body.items[0]" (raw id if unmapped)"""
        segments = split_path(node_id_path)
        if not segments:
            return node_id_path
        segments[0] = self.display_alias_of(segments[0])
        return join_path(segments)

    def format_for_display(self, binding: str, separator: str = '.') -> str:
        """
        Render a binding or path for people.

        env.* bindings show the secret name only; the value is never looked
        up here. Plain flow variables are returned as-is.
        """
        expression = VariableResolver.parse_binding(binding)
        wrapped = expression is not None
        path = expression if wrapped else binding

        segments = split_path(path)
        if segments and segments[0] != ENV_PREFIX and len(segments) > 1:
            segments[0] = self.display_alias_of(segments[0])
        text = separator.join(segments)
        return f'{{{{{text}}}}}' if wrapped and separator == '.' else text
