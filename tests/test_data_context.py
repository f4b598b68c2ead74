"""
Tests for DataContextTracker
"""

import pytest
from flowrun.flow_engine.data_context import DataContextTracker, describe, infer_type


@pytest.fixture
def tracker(engine_config):
    return DataContextTracker(engine_config)


class TestSampling:
    """Test bounded samples"""

    def test_array_truncated_with_true_count(self, tracker):
        """Test arrays keep 5 items and remember the real length"""
        context = tracker.store('n1', 'Fetch', {'items': list(range(1, 101))})

        sample = context.outputs['items']
        assert sample.value == [1, 2, 3, 4, 5]
        assert sample.sample_count == 100
        assert sample.truncated is True
        assert sample.type == 'array'

    def test_depth_limit(self, tracker):
        """Test nesting stops at the depth limit"""
        deep = {'a': {'b': {'c': {'d': 1}}}}
        context = tracker.store('n1', 'Deep', {'deep': deep})

        assert context.outputs['deep'].value == {'a': {'b': {'c': '[Object]'}}}
        assert context.outputs['deep'].truncated is True

    def test_key_limit(self, tracker):
        """Test objects keep at most 15 properties per level"""
        wide = {f'k{i}': i for i in range(40)}
        context = tracker.store('n1', 'Wide', {'wide': wide})

        assert len(context.outputs['wide'].value) == 15
        assert context.outputs['wide'].description.startswith('Object with 40 properties: k0, k1, k2')

    def test_small_values_untouched(self, tracker):
        context = tracker.store('n1', 'Small', {'status': 200, 'ok': True})

        assert context.outputs['status'].value == 200
        assert context.outputs['status'].truncated is False
        assert context.outputs['ok'].description == 'Boolean: true'

    def test_non_mapping_output_wrapped(self, tracker):
        """Test a bare value is stored under 'value'"""
        context = tracker.store('n1', 'Scalar', 'hello')

        assert list(context.outputs) == ['value']
        assert context.outputs['value'].description == 'Text (5 characters)'

    def test_store_overwrites(self, tracker):
        """Test re-executing a node replaces its whole entry"""
        tracker.store('n1', 'Node', {'a': 1, 'b': 2})
        tracker.store('n1', 'Node', {'c': 3})

        assert list(tracker.get('n1').outputs) == ['c']


class TestQueries:
    """Test lookups built on stored entries"""

    def test_array_fields_of(self, tracker):
        tracker.store('n1', 'Fetch', {'orders': [{'id': i} for i in range(10)], 'total': 10})

        fields = tracker.array_fields_of('n1')
        assert [f['name'] for f in fields] == ['orders']
        assert len(fields[0]['sample']) == 5
        assert fields[0]['description'] == 'Array with 10 items'

    def test_array_fields_of_unknown_node(self, tracker):
        assert tracker.array_fields_of('missing') == []

    def test_suggestions_for(self, tracker):
        """Test suggestions carry canonical bindings"""
        tracker.store('n1', 'Fetch', {'status': 200})
        tracker.store('n2', 'Other', {'x': 1})

        suggestions = tracker.suggestions_for(['n1', 'missing'])
        assert suggestions == [{
            'label': 'Fetch.status',
            'value': '{{n1.status}}',
            'description': 'Number: 200',
            'sample': 200,
            'type': 'number',
        }]

    def test_clear(self, tracker):
        tracker.store('n1', 'A', {'x': 1})
        tracker.store('n2', 'B', {'x': 2})

        tracker.clear('n1')
        assert 'n1' not in tracker
        assert len(tracker) == 1

        tracker.clear_all()
        assert len(tracker) == 0

    def test_snapshot_is_serializable(self, tracker):
        tracker.store('n1', 'A', {'items': [1, 2]})

        snapshot = tracker.snapshot()
        assert snapshot['n1']['outputs']['items']['sampleCount'] == 2


class TestInference:
    """Test type inference and descriptions"""

    @pytest.mark.parametrize('value,expected', [
        ([1], 'array'),
        (None, 'null'),
        ({}, 'object'),
        (True, 'boolean'),
        (1.5, 'number'),
        ('x', 'string'),
    ])
    def test_infer_type(self, value, expected):
        assert infer_type(value) == expected

    def test_describe(self):
        assert describe([1, 2, 3]) == 'Array with 3 items'
        assert describe({'a': 1, 'b': 2}) == 'Object with 2 properties: a, b'
        assert describe(None) == 'Empty value'
