"""
Execution context handed to a node for one run.

This is the host side of the node contract: it owns the input items, the
configured parameters, the continue-on-fail flag and the authenticated HTTP
helper. Nodes only read from it.
"""

import copy
from typing import Any, Dict, List, Optional

import httpx

from ..exceptions import NodeOperationError
from ..services import credentials, upstage_http
from .types import ExecutionItem, NodeDescription, RequestOptions


_MISSING = object()


class ExecutionContext:
    """Per-execution view of items, parameters and host helpers."""

    def __init__(
        self,
        description: NodeDescription,
        items: List[ExecutionItem],
        parameters: Optional[Dict[str, Any]] = None,
        continue_on_fail: bool = False,
        credential_overrides: Optional[Dict[str, Dict[str, Any]]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            description: Descriptor of the node being executed
            items: Input items, in order
            parameters: Configured parameter values (missing ones use declared defaults).
                An item's own `parameters` map overrides these for that item.
            continue_on_fail: Emit error items instead of aborting the batch
            credential_overrides: Per-execution credential data keyed by credential name
            http_client: Optional shared httpx client (tests inject a MockTransport here)
        """
        self.description = description
        self._items = items
        self._parameters = dict(parameters or {})
        self._item_parameters: Dict[int, Dict[str, Any]] = {}
        self._resolved: Dict[int, Dict[str, Any]] = {}
        self._continue_on_fail = continue_on_fail
        self._credential_overrides = credential_overrides or {}
        self._http_client = http_client

    def get_input_data(self) -> List[ExecutionItem]:
        return self._items

    def continue_on_fail(self) -> bool:
        return self._continue_on_fail

    def get_node_parameter(self, name: str, index: int, default: Any = _MISSING) -> Any:
        """
        Read a parameter value for the item at `index`.

        Supplied values win (the item's own over the batch's), then the
        caller's `default`, then the property's declared default. Values of
        properties hidden by the item's configuration are ignored.
        """
        self._check_index(index)
        prop = self.description.get_property(name)
        parameters = self._parameters_for(index)

        if name in parameters and (prop is None or prop.is_visible(self._resolved[index])):
            return parameters[name]
        if default is not _MISSING:
            return default
        if prop is None:
            raise NodeOperationError(f'Could not get parameter "{name}"')
        return copy.deepcopy(prop.default)

    def get_binary_data_buffer(self, index: int, property_name: str) -> bytes:
        self._check_index(index)
        binary = self._items[index].binary or {}
        if property_name not in binary:
            raise NodeOperationError(f'No binary data found in property "{property_name}".')
        return binary[property_name].data

    async def http_request_with_authentication(self, credential_name: str, options: RequestOptions) -> Any:
        """Perform an HTTP call authenticated with the named credential."""
        credential = credentials.get_credential(credential_name, self._credential_overrides)
        return await upstage_http.request_with_authentication(
            credential, options, client=self._http_client
        )

    def _parameters_for(self, index: int) -> Dict[str, Any]:
        if index not in self._item_parameters:
            parameters = dict(self._parameters)
            parameters.update(self._items[index].parameters or {})
            self._item_parameters[index] = parameters
            self._resolved[index] = self.description.resolve_parameters(parameters)
        return self._item_parameters[index]

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self._items):
            raise NodeOperationError(f"Item index {index} out of range")
