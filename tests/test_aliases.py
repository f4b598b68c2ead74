"""
Tests for AliasRegistry
"""

import random

from flowrun.flow_engine.aliases import AliasRegistry
from helpers import make_node


def webhook_nodes():
    return [
        make_node('node-c', 'webhook-trigger', label='Webhook'),
        make_node('node-a', 'webhook-trigger', label='Webhook'),
        make_node('node-b', 'webhook-trigger', label='Webhook'),
    ]


class TestAliasRegistry:
    """Test alias assignment"""

    def test_duplicate_labels_suffixed_by_id_order(self):
        """Test "Webhook", "Webhook 2", "Webhook 3" in ascending id order"""
        registry = AliasRegistry(webhook_nodes())

        assert registry.aliases() == {
            'node-a': 'Webhook',
            'node-b': 'Webhook 2',
            'node-c': 'Webhook 3',
        }

    def test_rebuild_is_idempotent(self):
        """Test rebuilding from any input order gives the same aliases"""
        nodes = webhook_nodes() + [make_node('x', label='Fetch'), make_node('y', label='Fetch')]
        registry = AliasRegistry(nodes)
        first = registry.aliases()

        shuffled = list(nodes)
        random.Random(7).shuffle(shuffled)
        registry.rebuild(shuffled)
        assert registry.aliases() == first

        registry.rebuild(nodes)
        assert registry.aliases() == first

    def test_literal_suffix_label_not_reused(self):
        """Test a label that already looks suffixed keeps aliases unique"""
        registry = AliasRegistry([
            make_node('a', label='Step'),
            make_node('b', label='Step 2'),
            make_node('c', label='Step'),
        ])

        aliases = registry.aliases()
        assert aliases['a'] == 'Step'
        assert aliases['b'] == 'Step 2'
        assert aliases['c'] == 'Step 3'

    def test_unlabeled_node_uses_type(self):
        registry = AliasRegistry([make_node('n1', 'http-request')])

        assert registry.display_alias_of('n1') == 'http-request'

    def test_display_alias_of_unknown(self):
        assert AliasRegistry([]).display_alias_of('ghost') == 'ghost'


class TestAliasPaths:
    """Test path translation"""

    def test_alias_to_path(self):
        registry = AliasRegistry(webhook_nodes())

        assert registry.alias_to_path('Webhook 2.body.items[0]') == 'node-b.body.items[0]'
        assert registry.alias_to_path('Webhook') == 'node-a'
        assert registry.alias_to_path('Unknown.body') is None

    def test_path_to_alias_keeps_brackets(self):
        """Test bracket segments survive the round trip"""
        registry = AliasRegistry(webhook_nodes())

        assert registry.path_to_alias('node-c.outputs[0].name') == 'Webhook 3.outputs[0].name'
        assert registry.path_to_alias('ghost.value') == 'ghost.value'

    def test_format_for_display(self):
        registry = AliasRegistry([make_node('node-a', label='Fetch Orders')])

        assert registry.format_for_display('{{node-a.body.total}}') == '{{Fetch Orders.body.total}}'
        assert registry.format_for_display('{{node-a.body.total}}', separator=' > ') == 'Fetch Orders > body > total'

    def test_env_binding_shows_name_only(self):
        """Test secrets are displayed by name and never looked up"""
        registry = AliasRegistry([make_node('env', label='Confusing')])

        assert registry.format_for_display('{{env.API_KEY}}') == '{{env.API_KEY}}'
