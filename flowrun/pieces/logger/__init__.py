"""
Logger Piece
Writes a message (and optional data) to the application log
"""
import logging

from flowrun.pieces.base import (
    NodePlugin,
    ExecutionContext,
    Property,
    PropertyType,
    register_plugin,
    long_text_property,
    dropdown_property,
    checkbox_property,
)

logger = logging.getLogger(__name__)

_LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warn': logging.WARNING,
    'warning': logging.WARNING,
    'error': logging.ERROR,
}


async def logger_handler(props: dict, ctx: ExecutionContext) -> dict:
    enabled = props.get('enabled', True)
    if enabled is False or enabled == 'false':
        return {'logged': False, 'message': 'Logging disabled'}

    level_name = str(props.get('logLevel') or 'info').lower()
    message = props.get('message') or 'Logger node executed'
    data = props.get('dataSource')

    logger.log(
        _LEVELS.get(level_name, logging.INFO),
        f"[flow {ctx.flow_id} run {ctx.run_id} node {ctx.node_id}] {message}",
    )

    return {
        'logged': True,
        'level': level_name,
        'message': message,
        'data': data,
    }


logger_plugin = NodePlugin(
    type="logger",
    display_name="Logger",
    description="Log a message during the run",
    category="utility",
    properties=[
        checkbox_property(
            name="enabled",
            display_name="Enabled",
            description="Turn logging on or off",
            default_value=True,
        ),
        dropdown_property(
            name="logLevel",
            display_name="Level",
            description="Log level",
            options=[{"label": name.title(), "value": name} for name in ('debug', 'info', 'warn', 'error')],
        ),
        long_text_property(
            name="message",
            display_name="Message",
            description="Text to log",
        ),
        Property(
            name="dataSource",
            display_name="Data",
            description="Binding whose value is attached to the log entry",
            type=PropertyType.VARIABLE,
        ),
    ],
    handler=logger_handler,
)

register_plugin(logger_plugin)
