"""
Pytest fixtures for flow engine tests
"""

import pytest

from flowrun.flow_engine.config import EngineConfig, set_config
from helpers import RecordingDispatcher


@pytest.fixture
def engine_config():
    """Engine config with small limits, installed as the singleton"""
    config = EngineConfig(
        functions_base_url='http://functions.test',
        functions_api_key='test-key',
        node_timeout=5,
        http_timeout=5,
        max_loop_iterations=50,
        parallel=False,
        sample_array_items=5,
        sample_max_depth=3,
        sample_max_keys=15,
        loop_sample_items=5,
    )
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()
