"""
Variable store - read-only lookup of flow variables and secrets by flow id

The engine only consumes this interface. Persistence lives elsewhere;
InMemoryVariableStore backs the API and tests.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Union

from flowrun.flow_engine.models import FlowVariable

logger = logging.getLogger(__name__)


class VariableStore(ABC):
    """Key-value read interface keyed by flow id"""

    @abstractmethod
    def get_variables(self, flow_id: str) -> List[FlowVariable]:
        """Variables of a flow, secret ones included (is_secret=True)"""

    @abstractmethod
    def get_secrets(self, flow_id: Optional[str] = None) -> Dict[str, str]:
        """Secrets visible to a flow, looked up through {{env.NAME}}"""

    def load(self, flow_id: Optional[str]):
        """
        Variables and secrets for one run.

        Secret flow variables are moved into the secret map so they are only
        reachable through env.* bindings.
        """
        secrets = dict(self.get_secrets(flow_id))
        variables = []
        if flow_id:
            for variable in self.get_variables(flow_id):
                if variable.is_secret:
                    secrets.setdefault(variable.name, variable.value)
                else:
                    variables.append(variable)
        return variables, secrets


class InMemoryVariableStore(VariableStore):
    """
    Dict-backed store.

    Global secrets are visible to every flow; flow secrets shadow them.
    """

    def __init__(
        self,
        variables: Optional[Dict[str, Iterable[Union[FlowVariable, Dict[str, Any]]]]] = None,
        secrets: Optional[Dict[str, str]] = None,
        flow_secrets: Optional[Dict[str, Dict[str, str]]] = None,
    ):
        self._variables: Dict[str, List[FlowVariable]] = {}
        self._secrets: Dict[str, str] = dict(secrets or {})
        self._flow_secrets: Dict[str, Dict[str, str]] = {
            flow_id: dict(values) for flow_id, values in (flow_secrets or {}).items()
        }
        for flow_id, items in (variables or {}).items():
            self.set_variables(flow_id, items)

    def set_variables(self, flow_id: str, items: Iterable[Union[FlowVariable, Dict[str, Any]]]):
        self._variables[flow_id] = [
            item if isinstance(item, FlowVariable) else FlowVariable.from_dict(item)
            for item in items
        ]
        logger.debug(f"Stored {len(self._variables[flow_id])} variables for flow {flow_id}")

    def set_secret(self, name: str, value: str, flow_id: Optional[str] = None):
        if flow_id:
            self._flow_secrets.setdefault(flow_id, {})[name] = value
        else:
            self._secrets[name] = value

    def get_variables(self, flow_id: str) -> List[FlowVariable]:
        return list(self._variables.get(flow_id, []))

    def get_secrets(self, flow_id: Optional[str] = None) -> Dict[str, str]:
        secrets = dict(self._secrets)
        if flow_id:
            secrets.update(self._flow_secrets.get(flow_id, {}))
        return secrets
