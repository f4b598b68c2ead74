"""
Condition Piece
TRUE/FALSE branching, or multiple cases with a default branch

Simple mode config:
    {"leftOperand": "{{fetch.status}}", "operator": "equals", "rightOperand": 200}

Multi-case config:
    {"cases": [{"id": "vip", "leftOperand": "{{crm.tier}}", "operator": "equals", "rightOperand": "gold"}]}

Outgoing edges are labeled with the branch they belong to ("true", "false",
a case id, or "default").
"""
from flowrun.flow_engine.branching import ConditionOperator, evaluate_cases
from flowrun.pieces.base import (
    NodePlugin,
    ActionResult,
    ExecutionContext,
    Property,
    PropertyType,
    register_plugin,
    dropdown_property,
)


async def condition_handler(props: dict, ctx: ExecutionContext) -> ActionResult:
    """
    Evaluate the condition and report the branch taken
    """
    if not props.get('cases') and 'operator' not in props:
        return ActionResult(
            success=False,
            error={"message": "Condition requires an operator or a list of cases"}
        )

    result, branch, case = evaluate_cases(props)

    return ActionResult(
        success=True,
        data={
            'result': result,
            'branch': branch,
            'matchedCase': case.get('label') or case.get('id') if case else None,
            'data': props.get('leftOperand'),
        }
    )


condition_plugin = NodePlugin(
    type="condition",
    display_name="Condition",
    description="Create conditional logic with TRUE/FALSE branches or multiple conditions",
    category="condition",
    properties=[
        Property(
            name="leftOperand",
            display_name="Value",
            description="Value to check, usually a {{nodeId.field}} binding",
            type=PropertyType.VARIABLE,
        ),
        dropdown_property(
            name="operator",
            display_name="Operator",
            description="Comparison operator",
            options=[{"label": op.name.replace('_', ' ').title(), "value": op.value} for op in ConditionOperator],
        ),
        Property(
            name="rightOperand",
            display_name="Compare To",
            description="Static value or binding",
            type=PropertyType.VARIABLE,
        ),
        Property(
            name="cases",
            display_name="Cases",
            description="Multiple conditions; the first match selects the branch",
            type=PropertyType.ARRAY,
        ),
    ],
    handler=condition_handler,
)

register_plugin(condition_plugin)
