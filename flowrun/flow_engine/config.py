"""
Flow engine settings.
"""
import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class EngineConfig:
    """Settings for dispatch, timeouts and data sampling"""

    # Serverless functions endpoint (HTTP dispatch)
    functions_base_url: str = field(default_factory=lambda: os.getenv('FUNCTIONS_BASE_URL', 'http://localhost:54321'))
    functions_api_key: str = field(default_factory=lambda: os.getenv('FUNCTIONS_API_KEY', ''))

    # Timeouts (in seconds). 0 disables the per-node deadline
    node_timeout: float = field(default_factory=lambda: float(os.getenv('FLOW_NODE_TIMEOUT', '300')))
    http_timeout: float = field(default_factory=lambda: float(os.getenv('FLOW_HTTP_TIMEOUT', '60')))

    # Loop safety limit
    max_loop_iterations: int = field(default_factory=lambda: int(os.getenv('FLOW_MAX_LOOP_ITERATIONS', '1000')))

    # Run independent DAG levels concurrently
    parallel: bool = field(default_factory=lambda: _env_bool('FLOW_PARALLEL'))

    # Data context sampling
    sample_array_items: int = field(default_factory=lambda: int(os.getenv('FLOW_SAMPLE_ARRAY_ITEMS', '5')))
    sample_max_depth: int = field(default_factory=lambda: int(os.getenv('FLOW_SAMPLE_MAX_DEPTH', '3')))
    sample_max_keys: int = field(default_factory=lambda: int(os.getenv('FLOW_SAMPLE_MAX_KEYS', '15')))
    loop_sample_items: int = field(default_factory=lambda: int(os.getenv('FLOW_LOOP_SAMPLE_ITEMS', '5')))

    @classmethod
    def from_env(cls) -> 'EngineConfig':
        """Build config from environment variables"""
        return cls()


# Config singleton
_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Return the engine config singleton"""
    global _config
    if _config is None:
        _config = EngineConfig.from_env()
    return _config


def set_config(config: Optional[EngineConfig]) -> None:
    """Replace the config singleton (None resets to environment defaults)"""
    global _config
    _config = config
