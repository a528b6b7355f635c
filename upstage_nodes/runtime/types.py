"""
Data model shared between the host runtime and the nodes.

Field names are snake_case in Python and camelCase on the wire
(displayName, pairedItem, mimeType, ...), matching what workflow hosts expect.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class HostModel(BaseModel):
    """Base model serializing with camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_host(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ============================================================================
# Node descriptor
# ============================================================================

class PropertyOption(HostModel):
    """One selectable value of an options / multiOptions property."""
    name: str
    value: Any
    description: Optional[str] = None


class CollectionOption(HostModel):
    """A group of sub-fields inside a fixedCollection property."""
    display_name: str
    name: str
    values: List["NodeProperty"]


class DisplayOptions(HostModel):
    """Conditions under which a property is shown.

    `show` maps another parameter's name to the list of values for which
    this property is visible. Every key must match.
    """
    show: Dict[str, List[Any]] = Field(default_factory=dict)

    def matches(self, parameters: Dict[str, Any]) -> bool:
        for name, allowed in self.show.items():
            if parameters.get(name) not in allowed:
                return False
        return True


class NodeProperty(HostModel):
    """One configuration field of a node."""
    display_name: str
    name: str
    type: str
    default: Any = None
    description: Optional[str] = None
    placeholder: Optional[str] = None
    required: Optional[bool] = None
    options: Optional[List[Union[PropertyOption, CollectionOption]]] = None
    type_options: Optional[Dict[str, Any]] = None
    display_options: Optional[DisplayOptions] = None

    def is_visible(self, parameters: Dict[str, Any]) -> bool:
        if self.display_options is None:
            return True
        return self.display_options.matches(parameters)


class NodeCredential(HostModel):
    name: str
    required: bool = True


class NodeDescription(HostModel):
    """Static metadata describing a node type."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    display_name: str
    name: str
    icon: Optional[str] = None
    group: List[str] = Field(default_factory=lambda: ["transform"])
    version: int = 1
    description: str = ""
    defaults: Dict[str, Any] = Field(default_factory=dict)
    inputs: List[str] = Field(default_factory=lambda: ["main"])
    outputs: List[str] = Field(default_factory=lambda: ["main"])
    credentials: List[NodeCredential] = Field(default_factory=list)
    properties: List[NodeProperty] = Field(default_factory=list)

    def get_property(self, name: str) -> Optional[NodeProperty]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def resolve_parameters(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fill in declared defaults for parameters the caller did not supply.

        Display options are evaluated against the resolved values, so a
        property hidden by the current configuration always reports its
        declared default.
        """
        resolved = {
            prop.name: parameters.get(prop.name, prop.default)
            for prop in self.properties
            if prop.type != "notice"
        }
        for prop in self.properties:
            if prop.name in resolved and not prop.is_visible(resolved):
                resolved[prop.name] = prop.default
        return resolved


CollectionOption.model_rebuild()


# ============================================================================
# Execution items
# ============================================================================

class BinaryData(HostModel):
    """A named file attachment on an item."""
    data: bytes
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None


class ExecutionItem(HostModel):
    """One unit of input data.

    `parameters` overrides the node parameters for this item only.
    """
    json_: Dict[str, Any] = Field(default_factory=dict, alias="json")
    binary: Optional[Dict[str, BinaryData]] = None
    parameters: Optional[Dict[str, Any]] = None


class PairedItem(HostModel):
    item: int


class NodeExecutionData(HostModel):
    """One output item, back-referencing its source item."""
    json_: Dict[str, Any] = Field(alias="json")
    paired_item: PairedItem
    binary: Optional[Dict[str, BinaryData]] = None


class RequestOptions(HostModel):
    """Descriptor for one outbound HTTP call."""
    method: str = "GET"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Union[Dict[str, Any], bytes]] = None
    json_: bool = Field(default=False, alias="json")
