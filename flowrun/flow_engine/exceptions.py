"""
Custom exceptions for the flow engine.
"""

from typing import List, Optional


class FlowEngineError(Exception):
    """Base error for flow-level failures"""

    def __init__(self, message: str, flow_id: str = None, run_id: str = None):
        self.message = message
        self.flow_id = flow_id
        self.run_id = run_id
        super().__init__(self.message)

    def __str__(self):
        if self.flow_id:
            return f"[flow {self.flow_id}] {self.message}"
        return self.message


class GraphValidationError(FlowEngineError):
    """Malformed graph: dangling edges, duplicate ids or a cycle"""

    def __init__(self, message: str, node_ids: Optional[List[str]] = None, flow_id: str = None):
        self.node_ids = list(node_ids or [])
        super().__init__(message, flow_id=flow_id)


class UnknownNodeTypeError(GraphValidationError):
    """A node type has no action handler"""

    def __init__(self, node_id: str, node_type: str, flow_id: str = None):
        self.node_id = node_id
        self.node_type = node_type
        super().__init__(
            f"No action handler for node {node_id} (type: {node_type})",
            node_ids=[node_id],
            flow_id=flow_id,
        )


class NodeExecutionError(FlowEngineError):
    """An action handler reported a failure or raised"""

    def __init__(self, node_id: str, node_type: str, detail: str, threw: bool = False):
        self.node_id = node_id
        self.node_type = node_type
        self.detail = detail
        self.threw = threw
        verb = 'threw' if threw else 'failed'
        super().__init__(f"Node {node_id} ({node_type}) {verb}: {detail}")


class NodeTimeoutError(NodeExecutionError):
    """Action handler did not finish before the node deadline"""

    def __init__(self, node_id: str, node_type: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(node_id, node_type, f"timed out after {timeout_seconds:g}s")


class FlowCancelledError(FlowEngineError):
    """Run was cancelled through its cancellation token"""

    def __init__(self, message: str = "Run cancelled", run_id: str = None):
        super().__init__(message, run_id=run_id)
