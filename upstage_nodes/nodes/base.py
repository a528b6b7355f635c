"""
Generic workflow node for Upstage capabilities.

Every Upstage node follows the same shape: for each input item build one
request, send it with the upstageApi credential, map the response into one
output item. Subclasses supply `description`, `build_request` and
`map_response`; the item loop and the continue-on-fail policy live here.
"""

import base64
import logging
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional

from ..exceptions import NodeOperationError
from ..runtime.context import ExecutionContext
from ..runtime.types import BinaryData, NodeDescription, NodeExecutionData, PairedItem, RequestOptions
from ..services.credentials import UPSTAGE_CREDENTIAL_NAME


log = logging.getLogger("upstage_nodes.nodes")


def error_message(error: BaseException) -> str:
    return str(error) or "Unknown error"


def status_code_of(error: BaseException) -> Any:
    return getattr(error, "status_code", None)


def value_or(value: Any, default: Any) -> Any:
    """`default` when `value` is None, `value` otherwise (falsy values kept)."""
    return default if value is None else value


def first_choice(response: Any) -> Dict[str, Any]:
    """choices[0] of a chat-completion style response, or {}."""
    if not isinstance(response, dict):
        return {}
    choices = response.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return {}


def first_message_content(response: Any) -> Any:
    message = first_choice(response).get("message")
    if not isinstance(message, dict):
        return None
    return message.get("content")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class UpstageNode:
    """Base class for nodes wrapping one Upstage endpoint family."""

    description: ClassVar[NodeDescription]
    credential_name: ClassVar[str] = UPSTAGE_CREDENTIAL_NAME

    async def execute(self, ctx: ExecutionContext) -> List[List[NodeExecutionData]]:
        """
        Run the node over every input item.

        Returns:
            A single output branch: one item per input item, in order
        """
        items = ctx.get_input_data()
        return_data: List[NodeExecutionData] = []

        for i in range(len(items)):
            try:
                options = await self.build_request(ctx, i)
                response = await ctx.http_request_with_authentication(self.credential_name, options)
                output = self.map_response(ctx, i, response)
                if not isinstance(output, dict):
                    raise NodeOperationError(
                        f"Unexpected response from Upstage API: expected a JSON object, got {type(output).__name__}"
                    )
                binary = items[i].binary if self.passthrough_binary(ctx, i) else None
                return_data.append(self._output(i, output, binary))
            except Exception as e:
                log.error(
                    "%s failed for item %d: %s (status=%s)",
                    self.description.display_name, i, error_message(e), status_code_of(e),
                )
                if ctx.continue_on_fail():
                    return_data.append(self._output(i, self.error_json(e)))
                    continue
                wrapped = self.wrap_error(e, i)
                if wrapped is e:
                    raise
                raise wrapped from e

        return [return_data]

    async def build_request(self, ctx: ExecutionContext, index: int) -> RequestOptions:
        raise NotImplementedError

    def map_response(self, ctx: ExecutionContext, index: int, response: Any) -> Dict[str, Any]:
        raise NotImplementedError

    def passthrough_binary(self, ctx: ExecutionContext, index: int) -> bool:
        return False

    def error_json(self, error: BaseException) -> Dict[str, Any]:
        """JSON for the error item emitted under continue-on-fail."""
        return {"error": error_message(error)}

    def wrap_error(self, error: BaseException, index: int) -> BaseException:
        """Exception propagated to the host when continue-on-fail is off."""
        return error

    # ------------------------------------------------------------------
    # Helpers shared by the concrete nodes
    # ------------------------------------------------------------------

    def get_binary(self, ctx: ExecutionContext, index: int, property_name: str) -> BinaryData:
        item = ctx.get_input_data()[index]
        if not item.binary or property_name not in item.binary:
            raise NodeOperationError(f'No binary data found in property "{property_name}".')
        return item.binary[property_name]

    def image_data_url(self, ctx: ExecutionContext, index: int, property_name: str) -> str:
        """Encode a binary property as a data: URL for image_url message content."""
        binary = self.get_binary(ctx, index, property_name)
        buffer = ctx.get_binary_data_buffer(index, property_name)
        mime = binary.mime_type or "application/octet-stream"
        return f"data:{mime};base64,{base64.b64encode(buffer).decode('ascii')}"

    @staticmethod
    def _output(
        index: int,
        json_data: Dict[str, Any],
        binary: Optional[Dict[str, BinaryData]] = None,
    ) -> NodeExecutionData:
        return NodeExecutionData(json=json_data, paired_item=PairedItem(item=index), binary=binary)
