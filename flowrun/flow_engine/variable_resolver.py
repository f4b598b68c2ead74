"""
Variable Resolver - Resolves {{env.NAME}}, {{name}} and {{nodeId.field}} bindings

Supports three namespaces:
- {{env.API_KEY}} - Secret / environment store
- {{customerId}} - Flow variable (no dot)
- {{nodeId.outputKey}} - Output of a node that already ran
- Nested paths: {{fetch.body.orders[0].id}}

Only a string that is ENTIRELY one binding is resolved. Text with an
embedded binding ("Hello {{name}}") passes through untouched.
"""

import logging
import re
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from flowrun.flow_engine.models import FlowVariable
from flowrun.flow_engine.paths import get_path, split_path

logger = logging.getLogger(__name__)

ENV_PREFIX = 'env'


class MissPolicy(str, Enum):
    """What an unresolved env.* binding becomes"""
    LITERAL = "literal"  # keep the "{{env.NAME}}" text as written
    NULL = "null"


VariablesInput = Union[Dict[str, Any], Iterable[Union[FlowVariable, Dict[str, Any]]], None]


def _variables_to_map(flow_variables: VariablesInput) -> Dict[str, Any]:
    if not flow_variables:
        return {}
    if isinstance(flow_variables, dict):
        return dict(flow_variables)

    values = {}
    for variable in flow_variables:
        if isinstance(variable, FlowVariable):
            values[variable.name] = variable.value
        elif isinstance(variable, dict) and 'name' in variable:
            values[variable['name']] = variable.get('value')
    return values


class VariableResolver:
    """
    Resolves bindings against secrets, flow variables and node outputs.

    Examples:
        {{env.STRIPE_KEY}} -> "sk_live_..."
        {{region}} -> "eu-west-1"
        {{fetchOrders.body.total}} -> 1250
        {{fetchOrders.body.items[0].sku}} -> "A-100"

    Resolution never raises. Misses degrade to None, except env.* misses
    under MissPolicy.LITERAL, which return the binding text unchanged.
    """

    BINDING_PATTERN = re.compile(r'^\{\{([^{}]+)\}\}$')

    def __init__(
        self,
        secrets: Optional[Dict[str, Any]] = None,
        flow_variables: VariablesInput = None,
        node_outputs: Optional[Dict[str, Any]] = None,
        env_miss_policy: MissPolicy = MissPolicy.LITERAL,
    ):
        """
        Args:
            secrets: Secret / environment values looked up by env.NAME
            flow_variables: FlowVariable list, dicts with name/value, or a
                name -> value mapping (later duplicates shadow earlier ones)
            node_outputs: node id -> recorded output
            env_miss_policy: Result for env.* bindings that miss
        """
        self.secrets = dict(secrets or {})
        self.flow_variables = _variables_to_map(flow_variables)
        self.node_outputs = node_outputs if node_outputs is not None else {}
        self.env_miss_policy = MissPolicy(env_miss_policy)

    def resolve(self, value: Any) -> Any:
        """
        Resolve bindings in value (recursively handles dicts and lists).

        Dict keys are never treated as bindings.
        """
        if isinstance(value, str):
            return self._resolve_string(value)
        elif isinstance(value, dict):
            return {k: self.resolve(v) for k, v in value.items()}
        elif isinstance(value, (list, tuple)):
            return [self.resolve(item) for item in value]
        else:
            return value

    def _resolve_string(self, text: str) -> Any:
        expression = self.parse_binding(text)
        if expression is None:
            return text

        found, value = self.lookup(expression)
        if found:
            return value

        if self._is_env(expression) and self.env_miss_policy == MissPolicy.LITERAL:
            return text
        return None

    @classmethod
    def parse_binding(cls, text: Any) -> Optional[str]:
        """Return the expression of a whole-string binding, else None"""
        if not isinstance(text, str):
            return None
        match = cls.BINDING_PATTERN.match(text)
        if not match:
            return None
        expression = match.group(1).strip()
        return expression or None

    @staticmethod
    def _is_env(expression: str) -> bool:
        return expression.startswith(f'{ENV_PREFIX}.')

    def lookup(self, expression: str) -> Tuple[bool, Any]:
        """
        Look up a binding expression (without braces).

        Returns:
            (found, value)
        """
        if self._is_env(expression):
            return self._lookup_secret(expression[len(ENV_PREFIX) + 1:])

        segments = split_path(expression)
        if len(segments) == 1:
            return self._lookup_variable(expression)

        return self._lookup_node_output(segments)

    def _lookup_secret(self, name: str) -> Tuple[bool, Any]:
        if name in self.secrets:
            return True, self.secrets[name]

        logger.debug(f"Secret not found: {name}")
        return False, None

    def _lookup_variable(self, name: str) -> Tuple[bool, Any]:
        if name in self.flow_variables:
            return True, self.flow_variables[name]

        logger.debug(f"Flow variable not found: {name}")
        return False, None

    def _lookup_node_output(self, segments: List[str]) -> Tuple[bool, Any]:
        node_id = segments[0]
        if node_id not in self.node_outputs:
            logger.debug(f"No output recorded for node: {node_id} (available: {list(self.node_outputs.keys())})")
            return False, None

        found, value = get_path(self.node_outputs[node_id], segments[1:])
        if not found:
            logger.debug(f"Path not found in output of {node_id}: {'.'.join(segments[1:])}")
        return found, value

    def validate(self, value: Any) -> List[str]:
        """
        List binding expressions in value that cannot be resolved.

        Returns:
            Unresolved expressions (empty if all valid)
        """
        return [expr for expr in extract_bindings(value) if not self.lookup(expr)[0]]

    def add_node_output(self, node_id: str, output: Any):
        """Record the output of a completed node"""
        self.node_outputs[node_id] = output
        logger.debug(f"Added node output for: {node_id}")

    def get_available_variables(self) -> List[str]:
        """Binding roots available right now (for documentation/debugging)"""
        roots = [f'{ENV_PREFIX}.{name}' for name in self.secrets]
        roots.extend(self.flow_variables.keys())
        roots.extend(self.node_outputs.keys())
        return roots


def extract_bindings(value: Any) -> List[str]:
    """All whole-string binding expressions found in value, in walk order"""
    found: List[str] = []

    def walk(item):
        if isinstance(item, str):
            expression = VariableResolver.parse_binding(item)
            if expression:
                found.append(expression)
        elif isinstance(item, dict):
            for v in item.values():
                walk(v)
        elif isinstance(item, (list, tuple)):
            for v in item:
                walk(v)

    walk(value)
    return found


def resolve(
    value: Any,
    secrets: Optional[Dict[str, Any]] = None,
    flow_variables: VariablesInput = None,
    upstream_outputs: Optional[Dict[str, Any]] = None,
    env_miss_policy: MissPolicy = MissPolicy.LITERAL,
) -> Any:
    """Resolve value in one call without keeping a resolver around"""
    resolver = VariableResolver(
        secrets=secrets,
        flow_variables=flow_variables,
        node_outputs=upstream_outputs,
        env_miss_policy=env_miss_policy,
    )
    return resolver.resolve(value)
