"""
Tests for InMemoryVariableStore and the flow models
"""

from flowrun.flow_engine.models import (
    SECRET_MASK,
    ErrorBehavior,
    FlowEdge,
    FlowNode,
    FlowRunInput,
    FlowVariable,
    NodeKind,
)
from flowrun.flow_engine.variable_store import InMemoryVariableStore


class TestInMemoryVariableStore:
    """Test variable and secret lookup"""

    def test_secret_variables_move_to_secrets(self):
        store = InMemoryVariableStore(variables={'f1': [
            FlowVariable(name='limit', value=10),
            {'name': 'TOKEN', 'value': 't-1', 'isSecret': True},
        ]})

        variables, secrets = store.load('f1')

        assert [v.name for v in variables] == ['limit']
        assert secrets == {'TOKEN': 't-1'}

    def test_flow_secrets_shadow_global(self):
        store = InMemoryVariableStore(secrets={'KEY': 'global', 'OTHER': 'o'})
        store.set_secret('KEY', 'flow', flow_id='f1')

        assert store.get_secrets('f1') == {'KEY': 'flow', 'OTHER': 'o'}
        assert store.get_secrets('f2') == {'KEY': 'global', 'OTHER': 'o'}

    def test_stored_secret_wins_over_secret_variable(self):
        store = InMemoryVariableStore(
            variables={'f1': [{'name': 'KEY', 'value': 'from-variable', 'is_secret': True}]},
            secrets={'KEY': 'from-store'},
        )

        assert store.load('f1')[1] == {'KEY': 'from-store'}

    def test_load_without_flow_id(self):
        store = InMemoryVariableStore(variables={'f1': [{'name': 'a', 'value': 1}]}, secrets={'S': 's'})

        assert store.load(None) == ([], {'S': 's'})

    def test_unknown_flow(self):
        assert InMemoryVariableStore().get_variables('missing') == []


class TestModels:
    """Test parsing of builder payloads"""

    def test_node_type_from_data(self):
        node = FlowNode.from_dict({
            'id': 'n1',
            'type': 'custom',
            'data': {'type': 'http-request', 'inputs': {'url': 'x'}, 'errorBehavior': 'continue'},
        })

        assert node.type == 'http-request'
        assert node.config == {'url': 'x'}
        assert node.error_behavior == ErrorBehavior.CONTINUE
        assert node.kind == NodeKind.ACTION

    def test_unknown_error_behavior_means_stop(self):
        node = FlowNode.from_dict({'id': 'n1', 'data': {'type': 'x', 'errorBehavior': 'retry'}})

        assert node.error_behavior == ErrorBehavior.STOP

    def test_kinds(self):
        assert NodeKind.for_type('webhook-trigger') == NodeKind.TRIGGER
        assert NodeKind.for_type('loop') == NodeKind.LOOP
        assert NodeKind.for_type('') == NodeKind.ACTION

    def test_edge_branch_from_data(self):
        edge = FlowEdge.from_dict({'source': 'a', 'target': 'b', 'data': {'branch': True}})

        assert edge.branch == 'True'

    def test_variable_to_dict_masks_secret(self):
        variable = FlowVariable(name='KEY', value='v', is_secret=True)

        assert variable.to_dict()['value'] == SECRET_MASK
        assert variable.to_dict(redact=False)['value'] == 'v'

    def test_run_input_from_dict(self):
        flow = FlowRunInput.from_dict({
            'flowId': 'f1',
            'nodes': [{'id': 'a', 'data': {'type': 'x'}}],
            'variables': [{'name': 'a', 'value': 1}, {'name': 'a', 'value': 2}],
        })

        assert flow.flow_id == 'f1'
        assert flow.edges == []
        assert flow.variables_by_name() == {'a': 2}

    def test_run_input_moves_secret_variables(self):
        flow = FlowRunInput.from_dict({
            'nodes': [],
            'variables': [
                {'name': 'region', 'value': 'eu'},
                {'name': 'TOKEN', 'value': 't-1', 'isSecret': True},
                {'name': 'KEY', 'value': 'from-variable', 'isSecret': True},
            ],
            'secrets': {'KEY': 'from-secrets'},
        })

        assert flow.variables_by_name() == {'region': 'eu'}
        assert flow.secrets == {'KEY': 'from-secrets', 'TOKEN': 't-1'}

    def test_run_input_does_not_mutate_given_secrets(self):
        secrets = {'A': 'a'}
        flow = FlowRunInput(nodes=[], variables=[FlowVariable(name='B', value='b', is_secret=True)], secrets=secrets)

        assert flow.secrets == {'A': 'a', 'B': 'b'}
        assert secrets == {'A': 'a'}
