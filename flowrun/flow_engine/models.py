"""
Flow data model - nodes, edges, variables and run records

Nodes and edges arrive in the React Flow shape produced by the flow builder:

    {
        'id': 'node-abc123',
        'type': 'custom',                 # React Flow component
        'position': {'x': 100, 'y': 200},
        'data': {
            'type': 'http-request',       # Action type (wins over top-level type)
            'label': 'Fetch Orders',
            'config': {'url': '{{env.API_URL}}'},
            'disabled': False,
            'errorBehavior': 'stop',
        }
    }

Run records serialize to camelCase JSON to match the builder's wire format.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


SECRET_MASK = '••••••••'


class NodeStatus(str, Enum):
    """Outcome of one node attempt"""
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class RunStatus(str, Enum):
    """Outcome of a whole run"""
    SUCCESS = "success"
    ERROR = "error"


class SkipReason(str, Enum):
    """Why a node was skipped"""
    DISABLED = "disabled"
    BRANCH_NOT_TAKEN = "branch_not_taken"


class ErrorBehavior(str, Enum):
    """What a node failure does to the rest of the run"""
    STOP = "stop"
    CONTINUE = "continue"


class NodeKind(str, Enum):
    """
    Closed set of node kinds the engine knows about.

    ACTION is the opaque variant: its config is passed through untouched to
    whatever handler serves the node type.
    """
    TRIGGER = "trigger"
    CONDITION = "condition"
    LOOP = "loop"
    RESPONSE = "response"
    ACTION = "action"

    @classmethod
    def for_type(cls, node_type: str) -> 'NodeKind':
        if not node_type:
            return cls.ACTION
        if node_type == 'condition':
            return cls.CONDITION
        if node_type == 'loop':
            return cls.LOOP
        if node_type == 'response':
            return cls.RESPONSE
        if node_type.endswith('-trigger') or node_type == 'trigger':
            return cls.TRIGGER
        return cls.ACTION


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class FlowNode:
    """One unit of work in a flow"""
    id: str
    type: str
    data: Dict[str, Any] = field(default_factory=dict)
    position: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'FlowNode':
        data = dict(raw.get('data') or {})
        node_type = data.get('type') or raw.get('type') or ''
        return cls(
            id=str(raw.get('id', '')),
            type=node_type,
            data=data,
            position=raw.get('position') or {},
        )

    @property
    def kind(self) -> NodeKind:
        return NodeKind.for_type(self.type)

    @property
    def label(self) -> str:
        return self.data.get('label') or self.type or self.id

    @property
    def config(self) -> Dict[str, Any]:
        # 'inputs' is the older name used by saved flows
        config = self.data.get('config')
        if config is None:
            config = self.data.get('inputs')
        return config or {}

    @property
    def disabled(self) -> bool:
        return bool(self.data.get('disabled'))

    @property
    def error_behavior(self) -> ErrorBehavior:
        try:
            return ErrorBehavior(self.data.get('errorBehavior') or ErrorBehavior.STOP.value)
        except ValueError:
            return ErrorBehavior.STOP

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'data': self.data,
            'position': self.position,
        }


@dataclass
class FlowEdge:
    """Directed dependency source -> target"""
    source: str
    target: str
    id: Optional[str] = None
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    branch: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'FlowEdge':
        data = raw.get('data') or {}
        branch = raw.get('branch', data.get('branch'))
        return cls(
            source=str(raw.get('source', '')),
            target=str(raw.get('target', '')),
            id=raw.get('id'),
            source_handle=raw.get('sourceHandle'),
            target_handle=raw.get('targetHandle'),
            branch=str(branch) if branch is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'source': self.source,
            'target': self.target,
            'sourceHandle': self.source_handle,
            'targetHandle': self.target_handle,
            'branch': self.branch,
        }


@dataclass
class FlowVariable:
    """Flow-scoped named value"""
    name: str
    value: Any = None
    id: Optional[str] = None
    is_secret: bool = False
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'FlowVariable':
        return cls(
            name=raw.get('name', ''),
            value=raw.get('value'),
            id=raw.get('id'),
            is_secret=bool(raw.get('is_secret', raw.get('isSecret', False))),
            description=raw.get('description'),
        )

    def to_dict(self, redact: bool = True) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'value': SECRET_MASK if (redact and self.is_secret) else self.value,
            'is_secret': self.is_secret,
            'description': self.description,
        }


@dataclass(frozen=True)
class NodeRunResult:
    """Immutable record of one node attempt"""
    node_id: str
    node_type: str
    status: NodeStatus
    started_at: datetime
    finished_at: datetime
    function_name: Optional[str] = None
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    skip_reason: Optional[SkipReason] = None

    @property
    def duration_ms(self) -> int:
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nodeId': self.node_id,
            'nodeType': self.node_type,
            'functionName': self.function_name,
            'status': self.status.value,
            'startedAt': _iso(self.started_at),
            'finishedAt': _iso(self.finished_at),
            'durationMs': self.duration_ms,
            'input': self.input,
            'output': self.output,
            'error': self.error,
            'skipReason': self.skip_reason.value if self.skip_reason else None,
        }


@dataclass
class FlowRunResult:
    """Terminal artifact of one execution"""
    run_id: str
    status: RunStatus
    started_at: datetime
    finished_at: Optional[datetime] = None
    flow_id: Optional[str] = None
    node_results: List[NodeRunResult] = field(default_factory=list)
    error: Optional[str] = None
    output: Any = None
    partial_errors: List[Dict[str, str]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCESS

    def first_error(self) -> Optional[NodeRunResult]:
        return next((r for r in self.node_results if r.status == NodeStatus.ERROR), None)

    def result_for(self, node_id: str) -> Optional[NodeRunResult]:
        return next((r for r in self.node_results if r.node_id == node_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'runId': self.run_id,
            'flowId': self.flow_id,
            'status': self.status.value,
            'startedAt': _iso(self.started_at),
            'finishedAt': _iso(self.finished_at),
            'nodeResults': [r.to_dict() for r in self.node_results],
            'error': self.error,
            'output': self.output,
            'partialErrors': self.partial_errors,
        }


@dataclass
class FlowRunInput:
    """Everything needed to execute one flow"""
    nodes: List[FlowNode]
    edges: List[FlowEdge] = field(default_factory=list)
    variables: List[FlowVariable] = field(default_factory=list)
    secrets: Dict[str, str] = field(default_factory=dict)
    flow_id: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Secret variables are only reachable through {{env.NAME}}
        self.secrets = dict(self.secrets)
        public = []
        for variable in self.variables:
            if variable.is_secret:
                self.secrets.setdefault(variable.name, variable.value)
            else:
                public.append(variable)
        self.variables = public

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'FlowRunInput':
        return cls(
            nodes=[FlowNode.from_dict(n) for n in raw.get('nodes') or []],
            edges=[FlowEdge.from_dict(e) for e in raw.get('edges') or []],
            variables=[FlowVariable.from_dict(v) for v in raw.get('variables') or []],
            secrets=dict(raw.get('secrets') or {}),
            flow_id=raw.get('flow_id', raw.get('flowId')),
            context=dict(raw.get('context') or {}),
        )

    def variables_by_name(self) -> Dict[str, Any]:
        """Name -> value map; later duplicates shadow earlier ones"""
        return {v.name: v.value for v in self.variables}
