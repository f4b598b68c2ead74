"""
Data Filter Piece
Filters a list of records by one field
"""
import logging

from flowrun.flow_engine.branching import check_condition
from flowrun.pieces.base import (
    NodePlugin,
    ExecutionContext,
    Property,
    PropertyType,
    register_plugin,
    short_text_property,
)

logger = logging.getLogger(__name__)


async def data_filter_handler(props: dict, ctx: ExecutionContext) -> dict:
    """
    Keep items whose filterField matches filterValue under filterOperation.
    Non-list data passes through unchanged.
    """
    data = props.get('data')

    if not isinstance(data, list):
        logger.warning(f"Data filter on {ctx.node_id} received {type(data).__name__}, passing through")
        return {'filtered': data, 'count': None}

    field_name = props.get('filterField')
    operation = props.get('filterOperation') or 'equals'
    expected = props.get('filterValue')

    filtered = list(data)
    if field_name and expected is not None:
        filtered = [
            item for item in filtered
            if isinstance(item, dict) and check_condition(item.get(field_name), operation, expected)
        ]

    limit = props.get('limit')
    if limit not in (None, ''):
        filtered = filtered[:int(limit)]

    return {'filtered': filtered, 'count': len(filtered)}


data_filter_plugin = NodePlugin(
    type="data-filter",
    display_name="Data Filter",
    description="Filter a list of records",
    category="data",
    properties=[
        Property(
            name="data",
            display_name="Data",
            description="List to filter, usually a {{nodeId.field}} binding",
            type=PropertyType.VARIABLE,
            required=True,
        ),
        short_text_property(
            name="filterField",
            display_name="Field",
            description="Record field to compare",
        ),
        short_text_property(
            name="filterOperation",
            display_name="Operation",
            description="Comparison operator (equals, notEquals, contains, ...)",
            placeholder="equals",
        ),
        Property(
            name="filterValue",
            display_name="Value",
            description="Value to compare against",
            type=PropertyType.VARIABLE,
        ),
        Property(
            name="limit",
            display_name="Limit",
            description="Maximum number of records to keep",
            type=PropertyType.NUMBER,
        ),
    ],
    handler=data_filter_handler,
)

register_plugin(data_filter_plugin)
