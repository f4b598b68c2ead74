"""
Set Variable Piece
Publishes a value under a chosen output key
"""
from flowrun.pieces.base import (
    NodePlugin,
    ExecutionContext,
    Property,
    PropertyType,
    register_plugin,
    short_text_property,
)


async def set_variable_handler(props: dict, ctx: ExecutionContext) -> dict:
    """
    Outputs {variableName: value}, readable downstream as {{nodeId.variableName}}
    """
    name = props.get('variableName') or 'value'
    return {name: props.get('value')}


set_variable_plugin = NodePlugin(
    type="set-variable",
    display_name="Set Variable",
    description="Store a value for later nodes",
    category="data",
    properties=[
        short_text_property(
            name="variableName",
            display_name="Variable Name",
            description="Output key to store the value under",
            placeholder="value",
        ),
        Property(
            name="value",
            display_name="Value",
            description="Static value or binding",
            type=PropertyType.VARIABLE,
            required=True,
        ),
    ],
    handler=set_variable_handler,
)

register_plugin(set_variable_plugin)
