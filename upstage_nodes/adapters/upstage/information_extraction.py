"""
Upstage Information Extraction node.

Operations:
- extract: extract structured data from a document with a JSON schema
- schema: generate a JSON schema from a sample document

The document is sent as an image_url message part, either a data: URL built
from a binary property or a plain http(s) URL.
"""

import json
import logging
from typing import Any, Dict, List

from ...exceptions import NodeOperationError
from ...nodes.base import UpstageNode, first_message_content
from ...runtime.context import ExecutionContext
from ...runtime.types import (
    DisplayOptions,
    NodeCredential,
    NodeDescription,
    NodeProperty,
    PropertyOption,
    RequestOptions,
)
from ...services.upstage_http import api_url
from ._json_repair import repair_json, strip_invisible_characters


log = logging.getLogger("upstage_nodes.information_extraction")

DEFAULT_FULL_RESPONSE_FORMAT = (
    '{"type":"json_schema","json_schema":{"name":"document_schema",'
    '"schema":{"type":"object","properties":{}}}}'
)


def _parse_content(content: Any) -> Any:
    """Parse message content as JSON; {} when empty, {"_raw": content} when not JSON."""
    if not content:
        return {}
    if not isinstance(content, str):
        return content
    try:
        return json.loads(content)
    except ValueError:
        return {"_raw": content}


def parse_schema(schema_raw: Any) -> Dict[str, Any]:
    """
    Parse the "Schema Only" JSON schema parameter.

    Raises:
        NodeOperationError: If the schema is not valid JSON or not a string/object
    """
    try:
        if isinstance(schema_raw, str):
            return json.loads(strip_invisible_characters(schema_raw))
        if isinstance(schema_raw, dict):
            return schema_raw
        raise ValueError("Invalid schema data type")
    except ValueError as e:
        raise NodeOperationError(f"Invalid JSON schema provided: {e}")


def parse_full_response_format(raw: Any) -> Dict[str, Any]:
    """
    Parse the "Full Response Format" parameter, repairing malformed JSON text.

    Raises:
        NodeOperationError: If the value cannot be parsed or lacks type/json_schema
    """
    try:
        if isinstance(raw, dict):
            return raw
        if not isinstance(raw, str):
            raise ValueError("Invalid response format data type")

        parsed = json.loads(repair_json(raw))

        if not isinstance(parsed, dict):
            raise ValueError("Parsed result is not a valid JSON object")
        if not parsed.get("type") or not parsed.get("json_schema"):
            raise ValueError("Missing required fields: type or json_schema")

        json_schema = parsed["json_schema"]
        log.debug(
            "Parsed response format: type=%s schema name=%s",
            parsed["type"], json_schema.get("name") if isinstance(json_schema, dict) else None,
        )
        return parsed
    except ValueError as e:
        raise NodeOperationError(f"Invalid full response format JSON provided: {e}")


def _image_message(url: str) -> Dict[str, Any]:
    return {
        "role": "user",
        "content": [{"type": "image_url", "image_url": {"url": url}}],
    }


class InformationExtractionUpstage(UpstageNode):
    description = NodeDescription(
        display_name="Upstage Information Extraction",
        name="informationExtractionUpstage",
        icon="file:upstage_v2.svg",
        description="Extract structured data from documents/images using Upstage Information Extraction",
        defaults={"name": "Upstage Information Extraction"},
        credentials=[NodeCredential(name="upstageApi", required=True)],
        properties=[
            NodeProperty(
                display_name="Operation",
                name="operation",
                type="options",
                options=[
                    PropertyOption(name="Extract Information", value="extract"),
                    PropertyOption(name="Generate Schema", value="schema"),
                ],
                default="extract",
                description=(
                    "Choose between extracting information with a schema or generating a schema "
                    "from a document"
                ),
            ),
            NodeProperty(
                display_name="Input Type",
                name="inputType",
                type="options",
                options=[
                    PropertyOption(name="Binary (from previous node)", value="binary"),
                    PropertyOption(name="Image URL", value="url"),
                ],
                default="binary",
            ),
            NodeProperty(
                display_name="Binary Property",
                name="binaryPropertyName",
                type="string",
                default="document",
                placeholder="e.g. document, data, file",
                description="Name of the binary property that contains the file",
                display_options=DisplayOptions(show={"inputType": ["binary"]}),
            ),
            NodeProperty(
                display_name="Image URL",
                name="imageUrl",
                type="string",
                default="",
                placeholder="e.g. https://example.com/sample.png",
                display_options=DisplayOptions(show={"inputType": ["url"]}),
            ),
            NodeProperty(
                display_name="Model",
                name="model",
                type="options",
                options=[
                    PropertyOption(name="information-extract (recommended)", value="information-extract"),
                ],
                default="information-extract",
            ),
            NodeProperty(
                display_name="Schema Input Type",
                name="schemaInputType",
                type="options",
                options=[
                    PropertyOption(name="Schema Only", value="schema"),
                    PropertyOption(name="Full Response Format", value="full"),
                ],
                default="schema",
                description="How to provide the JSON schema",
                display_options=DisplayOptions(show={"operation": ["extract"]}),
            ),
            NodeProperty(
                display_name="Schema Name",
                name="schemaName",
                type="string",
                default="document_schema",
                description="Name for the JSON schema in response_format",
                display_options=DisplayOptions(show={"operation": ["extract"], "schemaInputType": ["schema"]}),
            ),
            NodeProperty(
                display_name="JSON Schema (object)",
                name="json_schema",
                type="json",
                default='{ "type": "object", "properties": {} }',
                description="Target JSON schema for extraction (object schema)",
                display_options=DisplayOptions(show={"operation": ["extract"], "schemaInputType": ["schema"]}),
            ),
            NodeProperty(
                display_name="Full Response Format JSON",
                name="fullResponseFormat",
                type="json",
                default=DEFAULT_FULL_RESPONSE_FORMAT,
                description="Complete response_format JSON (including type, json_schema, name, and schema)",
                display_options=DisplayOptions(show={"operation": ["extract"], "schemaInputType": ["full"]}),
            ),
            NodeProperty(
                display_name="Guidance (optional)",
                name="prompt",
                type="string",
                type_options={"rows": 3},
                default="",
                placeholder="e.g., Generate a schema suitable for bank statements.",
                description="Optional text instruction to influence schema generation",
                display_options=DisplayOptions(show={"operation": ["schema"]}),
            ),
            NodeProperty(
                display_name="Pages per Chunk",
                name="pagesPerChunk",
                type="number",
                default=0,
                type_options={"minValue": 0},
                description="Chunk pages to improve performance (recommended for 30+ pages). 0 to disable.",
                display_options=DisplayOptions(show={"operation": ["extract"]}),
            ),
            NodeProperty(
                display_name="Return",
                name="returnMode",
                type="options",
                options=[
                    PropertyOption(name="Extracted JSON Only", value="extracted"),
                    PropertyOption(name="Schema JSON Only", value="schema"),
                    PropertyOption(name="Full Response", value="full"),
                ],
                default="extracted",
            ),
        ],
    )

    async def build_request(self, ctx: ExecutionContext, index: int) -> RequestOptions:
        operation = ctx.get_node_parameter("operation", index)
        model = ctx.get_node_parameter("model", index)

        if operation == "extract":
            response_format = self._response_format(ctx, index)
            pages_per_chunk = ctx.get_node_parameter("pagesPerChunk", index, 0)
            body: Dict[str, Any] = {
                "model": model,
                "messages": [_image_message(self._image_reference(ctx, index))],
                "response_format": response_format,
            }
            if pages_per_chunk and pages_per_chunk > 0:
                body["chunking"] = {"pages_per_chunk": pages_per_chunk}
            return RequestOptions(method="POST", url=api_url("/information-extraction"), body=body, json=True)

        prompt = (ctx.get_node_parameter("prompt", index, "") or "").strip()
        image_url = self._image_reference(ctx, index)
        messages: List[Dict[str, Any]] = []
        if prompt:
            messages.append({"role": "user", "content": prompt})
        messages.append(_image_message(image_url))

        return RequestOptions(
            method="POST",
            url=api_url("/information-extraction/schema-generation"),
            body={"model": model, "messages": messages},
            json=True,
        )

    def map_response(self, ctx: ExecutionContext, index: int, response: Any) -> Dict[str, Any]:
        operation = ctx.get_node_parameter("operation", index)
        return_mode = ctx.get_node_parameter("returnMode", index)
        if return_mode == "full":
            return response

        data = response if isinstance(response, dict) else {}
        content = _parse_content(first_message_content(response))

        if operation == "extract":
            return {
                "extracted": content,
                "model": data.get("model"),
                "usage": data.get("usage"),
                "full_response": response,
            }

        schema = content if isinstance(content, dict) else {}
        return {
            "schema_type": schema.get("type"),
            "json_schema": schema.get("json_schema"),
            "raw": content,
            "model": data.get("model"),
            "usage": data.get("usage"),
        }

    def passthrough_binary(self, ctx: ExecutionContext, index: int) -> bool:
        return ctx.get_node_parameter("operation", index) == "schema"

    def _response_format(self, ctx: ExecutionContext, index: int) -> Dict[str, Any]:
        schema_input_type = ctx.get_node_parameter("schemaInputType", index)
        if schema_input_type == "schema":
            return {
                "type": "json_schema",
                "json_schema": {
                    "name": ctx.get_node_parameter("schemaName", index),
                    "schema": parse_schema(ctx.get_node_parameter("json_schema", index)),
                },
            }
        return parse_full_response_format(ctx.get_node_parameter("fullResponseFormat", index))

    def _image_reference(self, ctx: ExecutionContext, index: int) -> str:
        if ctx.get_node_parameter("inputType", index) == "binary":
            return self.image_data_url(ctx, index, ctx.get_node_parameter("binaryPropertyName", index))
        image_url = ctx.get_node_parameter("imageUrl", index)
        if not image_url:
            raise NodeOperationError("Image URL is required.")
        return image_url
