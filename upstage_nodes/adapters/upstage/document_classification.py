"""
Upstage Document Classification node.

Classifies a document image into one of the user's categories. Categories
come from form fields or from a raw JSON array and are sent as the oneOf of
a string JSON schema.
"""

import json
from typing import Any, Dict, List

from ...exceptions import NodeOperationError
from ...nodes.base import UpstageNode, first_choice, first_message_content
from ...runtime.context import ExecutionContext
from ...runtime.types import (
    CollectionOption,
    DisplayOptions,
    NodeCredential,
    NodeDescription,
    NodeProperty,
    PropertyOption,
    RequestOptions,
)
from ...services.upstage_http import api_url


RAW_SCHEMA_PLACEHOLDER = """[
  {
    "const": "invoice",
    "description": "A document requesting payment for goods or services"
  },
  {
    "const": "receipt",
    "description": "A document confirming payment has been made"
  }
]"""


def categories_to_one_of(categories: Any) -> List[Dict[str, Any]]:
    """Convert the fixedCollection value {"values": [{label, description}]} to oneOf entries."""
    values = categories.get("values", []) if isinstance(categories, dict) else []
    return [
        {"const": category.get("label", ""), "description": category.get("description", "")}
        for category in values
    ]


def parse_raw_one_of(raw: str) -> List[Any]:
    """
    Parse the raw JSON oneOf array.

    Raises:
        NodeOperationError: If the value is empty, not JSON, or not an array
    """
    if not raw:
        raise NodeOperationError("Raw JSON schema is required when input type is JSON.")
    try:
        one_of = json.loads(raw)
        if not isinstance(one_of, list):
            raise ValueError("Raw JSON schema must be an array.")
    except ValueError as e:
        raise NodeOperationError(f"Invalid JSON format: {e}")
    return one_of


class DocumentClassificationUpstage(UpstageNode):
    description = NodeDescription(
        display_name="Upstage Document Classification",
        name="documentClassificationUpstage",
        icon="file:upstage_v2.svg",
        description="Classify documents into predefined categories using Upstage Document Classification",
        defaults={"name": "Upstage Document Classification"},
        credentials=[NodeCredential(name="upstageApi", required=True)],
        properties=[
            NodeProperty(
                display_name="Input Type",
                name="inputType",
                type="options",
                options=[
                    PropertyOption(name="Binary (from previous node)", value="binary"),
                    PropertyOption(name="Image URL", value="url"),
                ],
                default="binary",
                description="How to provide the document for classification",
            ),
            NodeProperty(
                display_name="Binary Property",
                name="binaryPropertyName",
                type="string",
                default="data",
                placeholder="e.g. data, document, file",
                description="Name of the input item binary property that contains the file",
                display_options=DisplayOptions(show={"inputType": ["binary"]}),
            ),
            NodeProperty(
                display_name="Image URL",
                name="imageUrl",
                type="string",
                default="",
                placeholder="e.g. https://example.com/document.jpg",
                description="URL of the image to classify",
                display_options=DisplayOptions(show={"inputType": ["url"]}),
            ),
            NodeProperty(display_name="Model", name="model", type="hidden", default="document-classify"),
            NodeProperty(display_name="Schema Name", name="schemaName", type="hidden", default="document-classify"),
            NodeProperty(
                display_name="Schema Input Type",
                name="schemaInputType",
                type="options",
                options=[
                    PropertyOption(name="Form Input", value="form"),
                    PropertyOption(name="Raw JSON", value="json"),
                ],
                default="form",
                description="How to define the classification categories",
            ),
            NodeProperty(
                display_name="Classification Categories",
                name="categories",
                type="fixedCollection",
                type_options={"multipleValues": True},
                default={},
                description="Define the categories for document classification",
                display_options=DisplayOptions(show={"schemaInputType": ["form"]}),
                options=[
                    CollectionOption(
                        display_name="Add",
                        name="values",
                        values=[
                            NodeProperty(
                                display_name="Label",
                                name="label",
                                type="string",
                                default="",
                                placeholder="e.g. invoice, receipt, contract",
                                description="The exact label string the model must return",
                            ),
                            NodeProperty(
                                display_name="Description",
                                name="description",
                                type="string",
                                type_options={"rows": 2},
                                default="",
                                placeholder="Brief description of this document type",
                                description="Natural language description to clarify the label",
                            ),
                        ],
                    ),
                ],
            ),
            NodeProperty(
                display_name="Raw JSON Schema",
                name="rawJsonSchema",
                type="string",
                type_options={"rows": 10},
                default="",
                placeholder=RAW_SCHEMA_PLACEHOLDER,
                description="Raw JSON array defining the oneOf schema for classification",
                display_options=DisplayOptions(show={"schemaInputType": ["json"]}),
            ),
            NodeProperty(
                display_name="Return",
                name="returnMode",
                type="options",
                options=[
                    PropertyOption(name="Classification Result Only", value="classification"),
                    PropertyOption(name="Full Response", value="full"),
                ],
                default="classification",
                description="What to return from the node",
            ),
        ],
    )

    async def build_request(self, ctx: ExecutionContext, index: int) -> RequestOptions:
        model = ctx.get_node_parameter("model", index)
        schema_name = ctx.get_node_parameter("schemaName", index)
        schema_input_type = ctx.get_node_parameter("schemaInputType", index)

        if ctx.get_node_parameter("inputType", index) == "binary":
            url = self.image_data_url(ctx, index, ctx.get_node_parameter("binaryPropertyName", index))
        else:
            url = ctx.get_node_parameter("imageUrl", index)
            if not url:
                raise NodeOperationError("Image URL is required when input type is URL.")
        content = [{"type": "image_url", "image_url": {"url": url}}]

        if schema_input_type == "form":
            one_of = categories_to_one_of(ctx.get_node_parameter("categories", index))
        else:
            one_of = parse_raw_one_of(ctx.get_node_parameter("rawJsonSchema", index))

        body = {
            "model": model,
            "messages": [{"role": "user", "content": content}],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name,
                    "schema": {"type": "string", "oneOf": one_of},
                },
            },
        }

        return RequestOptions(
            method="POST",
            url=api_url("/document-classification"),
            body=body,
            headers={"Content-Type": "application/json"},
        )

    def map_response(self, ctx: ExecutionContext, index: int, response: Any) -> Dict[str, Any]:
        if ctx.get_node_parameter("returnMode", index) != "classification":
            return response
        return {
            "classification": first_message_content(response) or "",
            "confidence": "high" if first_choice(response).get("finish_reason") == "stop" else "low",
        }
