"""
Upstage Document Parsing node.

Operations:
- sync: upload a document and return the parsed HTML/Markdown/text
- asyncSubmit: upload a document for asynchronous parsing
- asyncGet: fetch the result of an asynchronous request
- asyncList: list asynchronous requests
"""

import json
from typing import Any, Dict
from urllib.parse import quote

from ...exceptions import NodeOperationError
from ...nodes.base import UpstageNode, error_message, status_code_of, utc_timestamp, value_or
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
from ._multipart import MultipartFile, build_multipart_form_data


UPLOAD_OPERATIONS = ["sync", "asyncSubmit"]

_upload_only = DisplayOptions(show={"operation": UPLOAD_OPERATIONS})


def _js_bool(value: bool) -> str:
    return "true" if value else "false"


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


class DocumentParsingUpstage(UpstageNode):
    description = NodeDescription(
        display_name="Upstage Document Parsing",
        name="documentParsingUpstage",
        icon="file:upstage_v2.svg",
        description="Convert documents into structured HTML/Markdown using Upstage Document Parse",
        defaults={"name": "Upstage Document Parsing"},
        credentials=[NodeCredential(name="upstageApi", required=True)],
        properties=[
            NodeProperty(
                display_name="Operation",
                name="operation",
                type="options",
                options=[
                    PropertyOption(name="Sync Parse (Upload File)", value="sync"),
                    PropertyOption(name="Async Submit (Upload File)", value="asyncSubmit"),
                    PropertyOption(name="Async Get Result (By Request ID)", value="asyncGet"),
                    PropertyOption(name="Async List Requests", value="asyncList"),
                ],
                default="sync",
            ),
            NodeProperty(
                display_name="Binary Property",
                name="binaryPropertyName",
                type="string",
                default="data",
                placeholder="e.g. data, document, file",
                description="Name of the input item binary property that contains the file",
                display_options=_upload_only,
            ),
            NodeProperty(
                display_name="Model",
                name="model",
                type="options",
                options=[
                    PropertyOption(name="document-parse (recommended)", value="document-parse"),
                    PropertyOption(name="document-parse-nightly", value="document-parse-nightly"),
                ],
                default="document-parse",
                display_options=_upload_only,
            ),
            NodeProperty(
                display_name="OCR",
                name="ocr",
                type="options",
                options=[
                    PropertyOption(name="Auto", value="auto"),
                    PropertyOption(name="Force", value="force"),
                ],
                default="auto",
                description=(
                    "Whether to perform OCR inference on the document before layout detection. "
                    "Auto applies OCR only to image documents; Force always performs OCR."
                ),
                display_options=_upload_only,
            ),
            NodeProperty(
                display_name="Base64 Encoding Categories",
                name="base64Categories",
                type="multiOptions",
                options=[
                    PropertyOption(name="figure", value="figure"),
                    PropertyOption(name="table", value="table"),
                    PropertyOption(name="equation", value="equation"),
                    PropertyOption(name="chart", value="chart"),
                ],
                default=[],
                description="Return cropped base64 images for selected categories",
                display_options=_upload_only,
            ),
            NodeProperty(
                display_name="Merge Multipage Tables",
                name="merge_multipage_tables",
                type="boolean",
                default=False,
                display_options=_upload_only,
            ),
            NodeProperty(
                display_name="Output Formats",
                name="outputFormats",
                type="multiOptions",
                options=[
                    PropertyOption(name="HTML", value="html"),
                    PropertyOption(name="Markdown", value="markdown"),
                    PropertyOption(name="Text", value="text"),
                ],
                default=["html"],
                description=(
                    "Specify which formats to include in the response. Each layout element will be "
                    "formatted according to these formats."
                ),
                display_options=_upload_only,
            ),
            NodeProperty(
                display_name="Include Coordinates",
                name="coordinates",
                type="boolean",
                default=True,
                description="Whether to return coordinates of bounding boxes of each layout element",
                display_options=_upload_only,
            ),
            NodeProperty(
                display_name="Chart Recognition",
                name="chartRecognition",
                type="boolean",
                default=True,
                description="Whether to use chart recognition. If true, charts are converted to tables.",
                display_options=_upload_only,
            ),
            NodeProperty(
                display_name="Return",
                name="returnMode",
                type="options",
                options=[
                    PropertyOption(name="Full Response", value="full"),
                    PropertyOption(name="Content → HTML", value="content_html"),
                    PropertyOption(name="Content → Markdown", value="content_markdown"),
                    PropertyOption(name="Content → Text", value="content_text"),
                    PropertyOption(name="Elements Array", value="elements"),
                ],
                default="full",
                display_options=DisplayOptions(show={"operation": ["sync"]}),
            ),
            NodeProperty(
                display_name="Request ID",
                name="requestId",
                type="string",
                default="",
                placeholder="e.g. e7b1b3b0-....",
                display_options=DisplayOptions(show={"operation": ["asyncGet"]}),
            ),
        ],
    )

    async def build_request(self, ctx: ExecutionContext, index: int) -> RequestOptions:
        operation = ctx.get_node_parameter("operation", index)

        if operation in UPLOAD_OPERATIONS:
            return self._upload_request(ctx, index, operation)

        if operation == "asyncGet":
            request_id = ctx.get_node_parameter("requestId", index)
            if not request_id:
                raise NodeOperationError("Request ID is required.")
            encoded_id = quote(request_id, safe="!~*'()")
            return RequestOptions(method="GET", url=api_url(f"/document-digitization/requests/{encoded_id}"))

        if operation == "asyncList":
            return RequestOptions(method="GET", url=api_url("/document-digitization/requests"))

        raise NodeOperationError(f'The operation "{operation}" is not supported.')

    def _upload_request(self, ctx: ExecutionContext, index: int, operation: str) -> RequestOptions:
        binary_property = ctx.get_node_parameter("binaryPropertyName", index)
        model = ctx.get_node_parameter("model", index)
        ocr = ctx.get_node_parameter("ocr", index)
        base64_categories = ctx.get_node_parameter("base64Categories", index, [])
        merge_multipage = ctx.get_node_parameter("merge_multipage_tables", index, False)
        output_formats = ctx.get_node_parameter("outputFormats", index, ["html"])
        coordinates = ctx.get_node_parameter("coordinates", index, True)
        chart_recognition = ctx.get_node_parameter("chartRecognition", index, True)

        binary = self.get_binary(ctx, index, binary_property)
        buffer = ctx.get_binary_data_buffer(index, binary_property)

        fields = {
            "model": model,
            "ocr": ocr,
            "output_formats": _compact_json(output_formats),
            "coordinates": _js_bool(coordinates),
            "chart_recognition": _js_bool(chart_recognition),
        }
        if base64_categories:
            fields["base64_encoding"] = _compact_json(base64_categories)
        if merge_multipage:
            fields["merge_multipage_tables"] = "true"

        body, content_type = build_multipart_form_data(
            fields,
            MultipartFile(
                data=buffer,
                filename=binary.file_name or "upload",
                content_type=binary.mime_type or "application/octet-stream",
            ),
        )

        path = "/document-digitization" if operation == "sync" else "/document-digitization/async"
        return RequestOptions(
            method="POST",
            url=api_url(path),
            body=body,
            headers={"Content-Type": content_type},
        )

    def map_response(self, ctx: ExecutionContext, index: int, response: Any) -> Dict[str, Any]:
        operation = ctx.get_node_parameter("operation", index)
        data = response if isinstance(response, dict) else {}

        if operation == "asyncSubmit":
            return {"request_id": data.get("request_id"), "submitted": True}

        if operation == "sync":
            return_mode = ctx.get_node_parameter("returnMode", index)
            content = data.get("content") if isinstance(data.get("content"), dict) else {}
            if return_mode == "content_html":
                return {"html": value_or(content.get("html"), "")}
            if return_mode == "content_markdown":
                return {"markdown": value_or(content.get("markdown"), "")}
            if return_mode == "content_text":
                return {"text": value_or(content.get("text"), "")}
            if return_mode == "elements":
                return {"elements": value_or(data.get("elements"), [])}

        return response

    def error_json(self, error: BaseException) -> Dict[str, Any]:
        return {
            "error": error_message(error),
            "statusCode": status_code_of(error),
            "timestamp": utc_timestamp(),
        }
