"""
Pieces Package - Auto-registers the built-in node plugins

This module imports and registers all built-in plugins when imported.
"""

from flowrun.pieces.base import registry

# Import plugins to trigger registration
from flowrun.pieces.webhook_trigger import webhook_trigger_plugin
from flowrun.pieces.condition import condition_plugin
from flowrun.pieces.set_variable import set_variable_plugin
from flowrun.pieces.data_filter import data_filter_plugin
from flowrun.pieces.http_request import http_request_plugin
from flowrun.pieces.response import response_plugin
from flowrun.pieces.logger import logger_plugin

__all__ = [
    'registry',
    'webhook_trigger_plugin',
    'condition_plugin',
    'set_variable_plugin',
    'data_filter_plugin',
    'http_request_plugin',
    'response_plugin',
    'logger_plugin',
]

BUILTIN_PLUGINS = [
    webhook_trigger_plugin,
    condition_plugin,
    set_variable_plugin,
    data_filter_plugin,
    http_request_plugin,
    response_plugin,
    logger_plugin,
]


def get_all_plugins():
    """
    Get all registered plugins.

    Returns:
        Dict mapping node types to NodePlugin instances
    """
    return registry.get_all()


def get_plugin(node_type: str):
    """
    Get a specific plugin by node type.

    Args:
        node_type: Node type (e.g., "condition", "http-request")

    Returns:
        NodePlugin instance or None if not found
    """
    return registry.get(node_type)


def init_plugins():
    """
    Make sure every built-in plugin is registered and log the inventory.

    Called during app startup. Re-registers built-ins in case a test or
    caller removed one from the shared registry.
    """
    import logging
    logger = logging.getLogger(__name__)

    for plugin in BUILTIN_PLUGINS:
        if plugin.type not in registry:
            registry.register(plugin)

    plugins = registry.get_all()
    logger.info(f"Initialized {len(plugins)} node plugins: {', '.join(sorted(plugins.keys()))}")
    return plugins
