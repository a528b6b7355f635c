"""
Upstage Document OCR node.

Uploads a binary document to the digitization endpoint (model "ocr") and
returns the full response or one projection of it (text, pages, words,
confidence).
"""

from typing import Any, Dict

from ...exceptions import CredentialError, NodeApiError, NodeOperationError
from ...nodes.base import UpstageNode, error_message, status_code_of, utc_timestamp, value_or
from ...runtime.context import ExecutionContext
from ...runtime.types import NodeCredential, NodeDescription, NodeProperty, PropertyOption, RequestOptions
from ...services.upstage_http import api_url
from ._multipart import MultipartFile, build_multipart_form_data


MAX_FILE_SIZE_BYTES = 50 * 1024 * 1024


class DocumentOCRUpstage(UpstageNode):
    description = NodeDescription(
        display_name="Upstage Document OCR",
        name="documentOCRUpstage",
        icon="file:upstage_v2.svg",
        description=(
            "Extract text from document images using Upstage Document OCR. Supports JPEG, PNG, "
            "BMP, PDF, TIFF, HEIC, DOCX, PPTX, XLSX, HWP, HWPX formats."
        ),
        defaults={"name": "Upstage Document OCR"},
        credentials=[NodeCredential(name="upstageApi", required=True)],
        properties=[
            NodeProperty(
                display_name="Binary Property",
                name="binaryPropertyName",
                type="string",
                default="data",
                placeholder="e.g. data, document, file",
                description="Name of the input item binary property that contains the file",
                required=True,
            ),
            NodeProperty(
                display_name="Model",
                name="model",
                type="options",
                options=[
                    PropertyOption(name="ocr (recommended)", value="ocr"),
                    PropertyOption(name="ocr-250904", value="ocr-250904"),
                ],
                default="ocr",
                description=(
                    'The OCR model to use. We recommend using the alias "ocr" which always points '
                    "to the latest stable model."
                ),
            ),
            NodeProperty(
                display_name="Schema",
                name="schema",
                type="options",
                options=[
                    PropertyOption(name="Default (Upstage)", value=""),
                    PropertyOption(name="Clova", value="clova"),
                    PropertyOption(name="Google", value="google"),
                ],
                default="",
                description=(
                    "Optional parameter that specifies the response format. If set, the output is "
                    "converted to the format of the corresponding OCR API."
                ),
            ),
            NodeProperty(
                display_name="Return",
                name="returnMode",
                type="options",
                options=[
                    PropertyOption(name="Full Response", value="full"),
                    PropertyOption(name="Text Only", value="text"),
                    PropertyOption(name="Pages Array", value="pages"),
                    PropertyOption(name="Words Array", value="words"),
                    PropertyOption(name="Confidence Score", value="confidence"),
                ],
                default="full",
                description="Choose what data to return from the OCR response",
            ),
        ],
    )

    async def build_request(self, ctx: ExecutionContext, index: int) -> RequestOptions:
        binary_property = ctx.get_node_parameter("binaryPropertyName", index)
        model = ctx.get_node_parameter("model", index)
        schema = ctx.get_node_parameter("schema", index)

        binary = self.get_binary(ctx, index, binary_property)
        if isinstance(binary.file_size, int) and binary.file_size > MAX_FILE_SIZE_BYTES:
            raise NodeOperationError("File size exceeds 50MB limit")

        buffer = ctx.get_binary_data_buffer(index, binary_property)

        fields = {"model": model}
        if schema:
            fields["schema"] = schema

        body, content_type = build_multipart_form_data(
            fields,
            MultipartFile(
                data=buffer,
                filename=binary.file_name or "upload",
                content_type=binary.mime_type or "application/octet-stream",
            ),
        )

        return RequestOptions(
            method="POST",
            url=api_url("/document-digitization"),
            body=body,
            headers={"Content-Type": content_type},
        )

    def map_response(self, ctx: ExecutionContext, index: int, response: Any) -> Dict[str, Any]:
        if not isinstance(response, dict):
            raise NodeOperationError("Invalid response format from Upstage OCR API")

        return_mode = ctx.get_node_parameter("returnMode", index)

        if return_mode == "text":
            return {"text": value_or(response.get("text"), "")}
        if return_mode == "pages":
            return {"pages": value_or(response.get("pages"), [])}
        if return_mode == "words":
            words = []
            for page in response.get("pages") or []:
                if isinstance(page, dict):
                    words.extend(page.get("words") or [])
            return {"words": words}
        if return_mode == "confidence":
            return {
                "confidence": value_or(response.get("confidence"), 0),
                "modelVersion": value_or(response.get("modelVersion"), ""),
                "numBilledPages": value_or(response.get("numBilledPages"), 0),
            }
        return response

    def error_json(self, error: BaseException) -> Dict[str, Any]:
        return {
            "error": error_message(error),
            "statusCode": status_code_of(error),
            "error_code": getattr(error, "code", None) or "unknown_error",
            "timestamp": utc_timestamp(),
        }

    def wrap_error(self, error: BaseException, index: int) -> BaseException:
        message = f"Upstage Document OCR failed for item {index}: {error_message(error)}"
        if isinstance(error, NodeApiError):
            return NodeApiError(message, status_code=error.status_code, code=error.code)
        if isinstance(error, CredentialError):
            return CredentialError(message)
        return NodeOperationError(message)
