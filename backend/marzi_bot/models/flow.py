# /marzi_bot/models/flow.py

from typing import Optional, List, Dict, Any, Literal, Union, Annotated
from pydantic import BaseModel, Field, ConfigDict, Discriminator, Tag, field_validator


class FlowNodeBase(BaseModel):
    """
    Fields shared by every node of a flow graph.

    This is a PURE DATA model. Stored flow documents use camelCase keys
    (messageKey, defaultNext, retryMessageKey); both spellings are accepted.
    """
    next: Optional[str] = Field(default=None, description="Node to move to after this one")
    message_key: Optional[str] = Field(default=None, alias="messageKey", description="Key into flow.messages")
    text: Optional[str] = Field(default=None, description="Inline message text, used when there is no messageKey")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class MessageNode(FlowNodeBase):
    type: Literal["message"] = "message"


class MenuOption(BaseModel):
    value: str
    label: Optional[str] = None
    next: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("value", "label", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        # Stored flows use both "1" and 1 as option values
        if v is None or isinstance(v, str):
            return v
        return str(v)


class MenuNode(FlowNodeBase):
    type: Literal["menu"] = "menu"
    options: List[MenuOption] = Field(default_factory=list)
    default_next: Optional[str] = Field(default=None, alias="defaultNext")


class ConditionBranch(BaseModel):
    when: str
    next: str

    model_config = ConfigDict(frozen=True)


class ConditionNode(FlowNodeBase):
    type: Literal["condition"] = "condition"
    conditions: List[ConditionBranch] = Field(default_factory=list)
    default_next: Optional[str] = Field(default=None, alias="defaultNext")


class ActionNode(FlowNodeBase):
    type: Literal["action"] = "action"
    action: str
    retry_message_key: Optional[str] = Field(default=None, alias="retryMessageKey")


class GenericNode(FlowNodeBase):
    """Any node whose type this engine does not know. Its text is shown and `next` followed."""
    type: str = "generic"


KNOWN_NODE_TYPES = ("message", "menu", "condition", "action")


def _node_tag(value: Any) -> str:
    node_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return node_type if node_type in KNOWN_NODE_TYPES else "generic"


FlowNode = Annotated[
    Union[
        Annotated[MessageNode, Tag("message")],
        Annotated[MenuNode, Tag("menu")],
        Annotated[ConditionNode, Tag("condition")],
        Annotated[ActionNode, Tag("action")],
        Annotated[GenericNode, Tag("generic")],
    ],
    Discriminator(_node_tag),
]


class FlowDefinition(BaseModel):
    """
    A declarative conversation graph.

    Immutable once loaded and shared by every conversation that uses it; a new
    version replaces the whole object.
    """
    id: str
    start: str
    nodes: Dict[str, FlowNode]
    messages: Dict[str, str] = Field(default_factory=dict)
    links: Dict[str, str] = Field(default_factory=dict)
    version: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def get_node(self, node_id: Optional[str]):
        if not node_id:
            return None
        return self.nodes.get(node_id)
