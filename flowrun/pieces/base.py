"""
Base classes for in-process node plugins (pieces)
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Callable, Awaitable, Union
from enum import Enum


class PropertyType(str, Enum):
    """Types of properties for node configuration"""
    SHORT_TEXT = "SHORT_TEXT"
    LONG_TEXT = "LONG_TEXT"
    NUMBER = "NUMBER"
    CHECKBOX = "CHECKBOX"
    DROPDOWN = "DROPDOWN"
    ARRAY = "ARRAY"
    OBJECT = "OBJECT"
    JSON = "JSON"
    CODE = "CODE"
    VARIABLE = "VARIABLE"


@dataclass
class Property:
    """
    Input definition for a node plugin
    """
    name: str
    display_name: str
    description: str
    type: PropertyType
    required: bool = False
    default_value: Any = None
    placeholder: str = ""

    # For DROPDOWN
    options: Optional[List[Dict[str, str]]] = None  # [{"label": "...", "value": "..."}]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'displayName': self.display_name,
            'description': self.description,
            'type': self.type.value,
            'required': self.required,
            'defaultValue': self.default_value,
            'placeholder': self.placeholder,
            'options': self.options,
        }


@dataclass
class ExecutionContext:
    """
    Context provided to plugins during execution
    """
    # Node being executed
    node_id: str
    node_type: str

    # Flow / run identifiers
    flow_id: Optional[str] = None
    run_id: Optional[str] = None

    # Flow variables (name -> value, secrets excluded)
    variables: Dict[str, Any] = field(default_factory=dict)

    # Outputs of direct predecessors
    upstream_outputs: Dict[str, Any] = field(default_factory=dict)

    # Outputs of every node that already ran in this run
    node_outputs: Dict[str, Any] = field(default_factory=dict)

    # Flow-level request context (webhook request, caller metadata)
    flow_context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ActionResult:
    """Result from executing a node"""
    success: bool
    data: Optional[Any] = None
    error: Optional[Dict[str, str]] = None  # {"message": "..."}

    @property
    def error_message(self) -> str:
        if not self.error:
            return 'Unknown error'
        return self.error.get('message') or 'Unknown error'


# Handlers return an ActionResult or a plain outputs mapping; raising is a failure
PluginHandler = Callable[[Dict[str, Any], ExecutionContext], Awaitable[Union[ActionResult, Dict[str, Any]]]]


@dataclass
class NodePlugin:
    """
    Plugin definition - the executable behavior behind one node type
    """
    type: str  # Unique node type (e.g., "condition", "http-request")
    display_name: str
    description: str
    properties: List[Property]
    handler: PluginHandler

    # Grouping in the node palette
    category: str = "action"

    async def execute(self, inputs: Dict[str, Any], context: ExecutionContext) -> Union[ActionResult, Dict[str, Any]]:
        return await self.handler(inputs, context)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'displayName': self.display_name,
            'description': self.description,
            'category': self.category,
            'properties': [p.to_dict() for p in self.properties],
        }


class PluginRegistry:
    """
    Registry for node plugins
    Singleton pattern
    """
    _instance = None
    _plugins: Dict[str, NodePlugin] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._plugins = {}
        return cls._instance

    def register(self, plugin: NodePlugin):
        """Register a plugin"""
        self._plugins[plugin.type] = plugin

    def unregister(self, node_type: str):
        """Remove a plugin"""
        self._plugins.pop(node_type, None)

    def get(self, node_type: str) -> Optional[NodePlugin]:
        """Get a plugin by node type"""
        return self._plugins.get(node_type)

    def get_all(self) -> Dict[str, NodePlugin]:
        """Get all registered plugins"""
        return self._plugins.copy()

    def __contains__(self, node_type: str) -> bool:
        return node_type in self._plugins


# Global registry instance
registry = PluginRegistry()


def register_plugin(plugin: NodePlugin):
    """Register a plugin in the global registry"""
    registry.register(plugin)


def get_plugin(node_type: str) -> Optional[NodePlugin]:
    """Get a plugin from the global registry"""
    return registry.get(node_type)


# Helper functions for creating common properties
def short_text_property(
    name: str,
    display_name: str,
    description: str,
    required: bool = False,
    placeholder: str = ""
) -> Property:
    """Create a short text property"""
    return Property(
        name=name,
        display_name=display_name,
        description=description,
        type=PropertyType.SHORT_TEXT,
        required=required,
        placeholder=placeholder
    )


def long_text_property(
    name: str,
    display_name: str,
    description: str,
    required: bool = False,
    placeholder: str = ""
) -> Property:
    """Create a long text property"""
    return Property(
        name=name,
        display_name=display_name,
        description=description,
        type=PropertyType.LONG_TEXT,
        required=required,
        placeholder=placeholder
    )


def dropdown_property(
    name: str,
    display_name: str,
    description: str,
    options: List[Dict[str, str]],
    required: bool = False
) -> Property:
    """Create a dropdown property"""
    return Property(
        name=name,
        display_name=display_name,
        description=description,
        type=PropertyType.DROPDOWN,
        required=required,
        options=options
    )


def checkbox_property(
    name: str,
    display_name: str,
    description: str,
    default_value: bool = False
) -> Property:
    """Create a checkbox property"""
    return Property(
        name=name,
        display_name=display_name,
        description=description,
        type=PropertyType.CHECKBOX,
        required=False,
        default_value=default_value
    )
