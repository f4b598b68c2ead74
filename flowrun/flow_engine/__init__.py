"""
Flow Engine - DAG flow execution

Orders a flow's nodes, resolves their bindings, dispatches each node to its
action handler and collects a structured run report.
"""

from flowrun.flow_engine.executor import FlowExecutor, CancellationToken, run_flow
from flowrun.flow_engine.variable_resolver import VariableResolver, MissPolicy
from flowrun.flow_engine.data_context import DataContextTracker
from flowrun.flow_engine.aliases import AliasRegistry
from flowrun.flow_engine.graph import order, build_execution_order
from flowrun.flow_engine.models import FlowRunInput, FlowRunResult

__all__ = [
    'FlowExecutor',
    'CancellationToken',
    'run_flow',
    'VariableResolver',
    'MissPolicy',
    'DataContextTracker',
    'AliasRegistry',
    'order',
    'build_execution_order',
    'FlowRunInput',
    'FlowRunResult',
]
