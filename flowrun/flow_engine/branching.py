"""
Branching Logic - condition evaluation and branch-aware edge activation

Supports:
- Simple conditions (equals, greaterThan, contains, isEmpty, ...)
- Grouped conditions (AND, OR)
- Multi-case conditions (first matching case wins, else "default")
- Explicit branch labels on edges, so nodes behind an untaken branch are
  skipped instead of running with missing inputs
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from flowrun.flow_engine.models import FlowEdge, FlowNode, NodeKind, NodeRunResult, NodeStatus, SkipReason

logger = logging.getLogger(__name__)

BRANCH_TRUE = "true"
BRANCH_FALSE = "false"
BRANCH_DEFAULT = "default"


class ConditionOperator(str, Enum):
    """Condition operators for branching"""
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    GREATER_THAN = "greaterThan"
    GREATER_OR_EQUAL = "greaterThanOrEqual"
    LESS_THAN = "lessThan"
    LESS_OR_EQUAL = "lessThanOrEqual"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"
    IS_TRUE = "isTrue"
    IS_FALSE = "isFalse"
    EXISTS = "exists"
    NOT_EXISTS = "notExists"


class LogicalOperator(str, Enum):
    """Logical operators for combining conditions"""
    AND = "AND"
    OR = "OR"


# Older spellings still found in saved flows
_OPERATOR_ALIASES = {
    'eq': ConditionOperator.EQUALS,
    'neq': ConditionOperator.NOT_EQUALS,
    'gt': ConditionOperator.GREATER_THAN,
    'gte': ConditionOperator.GREATER_OR_EQUAL,
    'lt': ConditionOperator.LESS_THAN,
    'lte': ConditionOperator.LESS_OR_EQUAL,
    'not_contains': ConditionOperator.NOT_CONTAINS,
    'not_exists': ConditionOperator.NOT_EXISTS,
    'EQUALS': ConditionOperator.EQUALS,
    'NOT_EQUALS': ConditionOperator.NOT_EQUALS,
    'GREATER_THAN': ConditionOperator.GREATER_THAN,
    'GREATER_OR_EQUAL': ConditionOperator.GREATER_OR_EQUAL,
    'LESS_THAN': ConditionOperator.LESS_THAN,
    'LESS_OR_EQUAL': ConditionOperator.LESS_OR_EQUAL,
    'CONTAINS': ConditionOperator.CONTAINS,
    'NOT_CONTAINS': ConditionOperator.NOT_CONTAINS,
    'STARTS_WITH': ConditionOperator.STARTS_WITH,
    'ENDS_WITH': ConditionOperator.ENDS_WITH,
    'IS_EMPTY': ConditionOperator.IS_EMPTY,
    'IS_NOT_EMPTY': ConditionOperator.IS_NOT_EMPTY,
    'EXISTS': ConditionOperator.EXISTS,
    'NOT_EXISTS': ConditionOperator.NOT_EXISTS,
}


def normalize_operator(operator: Any) -> Optional[ConditionOperator]:
    if isinstance(operator, ConditionOperator):
        return operator
    if operator in _OPERATOR_ALIASES:
        return _OPERATOR_ALIASES[operator]
    try:
        return ConditionOperator(operator)
    except ValueError:
        return None


def _loose_equals(actual: Any, expected: Any) -> bool:
    if actual == expected:
        return True
    # Form inputs arrive as strings: "10" should equal 10
    if actual is None or expected is None:
        return False
    return str(actual) == str(expected)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, dict)) and len(value) == 0)


def check_condition(actual: Any, operator: Any, expected: Any = None) -> bool:
    """
    Check a simple condition.

    Args:
        actual: Left operand (already resolved)
        operator: ConditionOperator or one of its older spellings
        expected: Right operand (already resolved)

    Returns:
        True if condition matches; unknown operators and uncomparable
        values are False
    """
    op = normalize_operator(operator)
    if op is None:
        logger.warning(f"Unknown operator: {operator}")
        return False

    try:
        if op == ConditionOperator.EQUALS:
            return _loose_equals(actual, expected)

        elif op == ConditionOperator.NOT_EQUALS:
            return not _loose_equals(actual, expected)

        elif op == ConditionOperator.GREATER_THAN:
            return float(actual) > float(expected)

        elif op == ConditionOperator.GREATER_OR_EQUAL:
            return float(actual) >= float(expected)

        elif op == ConditionOperator.LESS_THAN:
            return float(actual) < float(expected)

        elif op == ConditionOperator.LESS_OR_EQUAL:
            return float(actual) <= float(expected)

        elif op == ConditionOperator.CONTAINS:
            return str(expected or '').lower() in str(actual or '').lower()

        elif op == ConditionOperator.NOT_CONTAINS:
            return str(expected or '').lower() not in str(actual or '').lower()

        elif op == ConditionOperator.STARTS_WITH:
            return str(actual or '').lower().startswith(str(expected or '').lower())

        elif op == ConditionOperator.ENDS_WITH:
            return str(actual or '').lower().endswith(str(expected or '').lower())

        elif op == ConditionOperator.IS_EMPTY:
            return _is_empty(actual)

        elif op == ConditionOperator.IS_NOT_EMPTY:
            return not _is_empty(actual)

        elif op == ConditionOperator.IS_TRUE:
            return actual is True or actual in ('true', 1, '1')

        elif op == ConditionOperator.IS_FALSE:
            return actual is False or actual in ('false', 0, '0')

        elif op == ConditionOperator.EXISTS:
            return actual is not None

        elif op == ConditionOperator.NOT_EXISTS:
            return actual is None

    except (ValueError, TypeError) as e:
        logger.warning(f"Error evaluating condition: {e}")
        return False

    return False


def evaluate_condition(condition: Dict[str, Any]) -> bool:
    """
    Evaluate one condition or an AND/OR group of conditions.

    Condition shapes:
        {"leftOperand": 5, "operator": "greaterThan", "rightOperand": 3}
        {"operator": "AND", "conditions": [...]}
    """
    operator = condition.get('operator')

    if operator in (LogicalOperator.AND.value, LogicalOperator.OR.value):
        results = [evaluate_condition(c) for c in condition.get('conditions', [])]
        if operator == LogicalOperator.AND.value:
            return all(results)
        return any(results)

    actual = condition.get('leftOperand', condition.get('field'))
    expected = condition.get('rightOperand', condition.get('value'))
    return check_condition(actual, operator, expected)


def evaluate_cases(config: Dict[str, Any]) -> Tuple[bool, str, Optional[Dict[str, Any]]]:
    """
    Pick the branch a condition node takes.

    With "cases", the first matching case wins and its id (or returnValue)
    is the branch; no match means "default". Otherwise the config is one
    condition and the branch is "true" or "false".

    Returns:
        (result, branch, matched_case)
    """
    cases = config.get('cases')
    if cases:
        for index, case in enumerate(cases):
            if evaluate_condition(case):
                branch = case.get('id') or case.get('returnValue') or str(index)
                logger.info(f"Condition case matched: {case.get('label') or branch}")
                return True, str(branch), case
        logger.info("No condition case matched, taking default branch")
        return False, BRANCH_DEFAULT, None

    result = evaluate_condition(config)
    return result, BRANCH_TRUE if result else BRANCH_FALSE, None


def taken_branch(output: Any) -> Optional[str]:
    """Branch a node output selected, if it selected one"""
    if not isinstance(output, dict):
        return None
    branch = output.get('branch')
    if branch is None and isinstance(output.get('result'), bool):
        branch = output['result']
    if branch is None:
        return None
    if isinstance(branch, bool):
        return BRANCH_TRUE if branch else BRANCH_FALSE
    return str(branch)


def edge_branch_label(edge: FlowEdge, source: Optional[FlowNode]) -> Optional[str]:
    """
    Explicit branch label of an edge.

    `edge.branch` wins. A sourceHandle only counts as a label when the
    source is a condition node; other nodes use handles for plain wiring.
    """
    if edge.branch is not None:
        return edge.branch.lower() if edge.branch.lower() in (BRANCH_TRUE, BRANCH_FALSE) else edge.branch
    if edge.source_handle is None:
        return None
    if source is not None and source.kind == NodeKind.CONDITION:
        return edge.source_handle
    return None


def is_edge_active(
    edge: FlowEdge,
    source: Optional[FlowNode],
    source_result: Optional[NodeRunResult],
    source_output: Any = None,
) -> bool:
    """
    Whether an edge carries control to its target.

    Inactive edges: the source has not run, the source was skipped because
    its own branch was not taken, or the edge is labeled with a branch the
    source did not take.
    """
    if source_result is None:
        return False

    if source_result.status == NodeStatus.SKIPPED:
        return source_result.skip_reason == SkipReason.DISABLED

    label = edge_branch_label(edge, source)
    if label is None:
        return True

    return taken_branch(source_output) == label


def active_inbound(
    node_id: str,
    edges: List[FlowEdge],
    nodes_by_id: Dict[str, FlowNode],
    results: Dict[str, NodeRunResult],
    outputs: Dict[str, Any],
) -> Tuple[List[FlowEdge], List[FlowEdge]]:
    """
    Split the inbound edges of node_id into (active, all_inbound).
    """
    inbound = [edge for edge in edges if edge.target == node_id]
    active = [
        edge for edge in inbound
        if is_edge_active(
            edge,
            nodes_by_id.get(edge.source),
            results.get(edge.source),
            outputs.get(edge.source),
        )
    ]
    return active, inbound
