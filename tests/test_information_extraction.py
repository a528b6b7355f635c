import base64
import json

import pytest

from upstage_nodes.adapters.upstage import InformationExtractionUpstage
from upstage_nodes.adapters.upstage.information_extraction import parse_full_response_format, parse_schema
from upstage_nodes.exceptions import NodeOperationError
from upstage_nodes.runtime import BinaryData, ExecutionItem

from .conftest import UpstageStub


INVOICE_SCHEMA = {"type": "object", "properties": {"total": {"type": "string"}}}

EXTRACTION_RESPONSE = {
    "id": "chatcmpl-1",
    "model": "information-extract",
    "choices": [{"index": 0, "finish_reason": "stop", "message": {"role": "assistant", "content": '{"total": "42.00"}'}}],
    "usage": {"prompt_tokens": 100, "completion_tokens": 5, "total_tokens": 105},
}


@pytest.fixture
def document_item():
    return ExecutionItem(
        json={},
        binary={"document": BinaryData(data=b"\x89PNG image", file_name="scan.png", mime_type="image/png")},
    )


@pytest.mark.asyncio
async def test_extract_with_schema_from_binary(make_context, document_item):
    stub = UpstageStub(EXTRACTION_RESPONSE)
    node = InformationExtractionUpstage()
    parameters = {"json_schema": json.dumps(INVOICE_SCHEMA), "schemaName": "invoice"}

    result = await node.execute(make_context(node, [document_item], parameters, stub))

    request = stub.requests[0]
    assert str(request.url) == "https://api.upstage.ai/v1/information-extraction"
    body = stub.json_body()
    encoded = base64.b64encode(b"\x89PNG image").decode()
    assert body == {
        "model": "information-extract",
        "messages": [
            {"role": "user", "content": [{"type": "image_url", "image_url": {"url": f"data:image/png;base64,{encoded}"}}]}
        ],
        "response_format": {"type": "json_schema", "json_schema": {"name": "invoice", "schema": INVOICE_SCHEMA}},
    }
    assert result[0][0].json_ == {
        "extracted": {"total": "42.00"},
        "model": "information-extract",
        "usage": EXTRACTION_RESPONSE["usage"],
        "full_response": EXTRACTION_RESPONSE,
    }
    assert result[0][0].binary is None


@pytest.mark.asyncio
async def test_extract_from_url_with_chunking(make_context):
    stub = UpstageStub(EXTRACTION_RESPONSE)
    node = InformationExtractionUpstage()
    parameters = {
        "inputType": "url",
        "imageUrl": "https://example.com/sample.png",
        "json_schema": INVOICE_SCHEMA,
        "pagesPerChunk": 5,
        "returnMode": "full",
    }

    result = await node.execute(make_context(node, [ExecutionItem()], parameters, stub))

    body = stub.json_body()
    assert body["messages"][0]["content"][0]["image_url"]["url"] == "https://example.com/sample.png"
    assert body["chunking"] == {"pages_per_chunk": 5}
    assert body["response_format"]["json_schema"]["name"] == "document_schema"
    assert result[0][0].json_ == EXTRACTION_RESPONSE


@pytest.mark.asyncio
async def test_extract_with_malformed_full_response_format(make_context):
    stub = UpstageStub(EXTRACTION_RESPONSE)
    node = InformationExtractionUpstage()
    malformed = (
        '{\r\n  "type": "json_schema",\r\n  "json_schema": {\r\n    "name": "invoice",\r\n'
        '    "schema": {"type": "object", "properties": {"total": {"type": "string"}}'
    )
    parameters = {
        "inputType": "url",
        "imageUrl": "https://example.com/sample.png",
        "schemaInputType": "full",
        "fullResponseFormat": malformed,
    }

    await node.execute(make_context(node, [ExecutionItem()], parameters, stub))

    assert stub.json_body()["response_format"] == {
        "type": "json_schema",
        "json_schema": {"name": "invoice", "schema": INVOICE_SCHEMA},
    }


def test_full_response_format_requires_type_and_schema():
    with pytest.raises(NodeOperationError, match="Missing required fields: type or json_schema"):
        parse_full_response_format('{"type": "json_schema"}')
    with pytest.raises(NodeOperationError, match="not a valid JSON object"):
        parse_full_response_format("[1, 2]")
    with pytest.raises(NodeOperationError, match="^Invalid full response format JSON provided: "):
        parse_full_response_format("definitely not json")


def test_full_response_format_accepts_objects():
    value = {"type": "json_schema", "json_schema": {"name": "x", "schema": {}}}
    assert parse_full_response_format(value) is value


def test_schema_parsing():
    assert parse_schema('\ufeff { "type": "object" } ') == {"type": "object"}
    with pytest.raises(NodeOperationError, match="^Invalid JSON schema provided: "):
        parse_schema("{not json")
    with pytest.raises(NodeOperationError, match="Invalid schema data type"):
        parse_schema(42)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content, expected",
    [("", {}), ("not json", {"_raw": "not json"}), ('{"a": [1]}', {"a": [1]})],
)
async def test_extracted_content_parsing(make_context, content, expected):
    response = {"model": "information-extract", "choices": [{"message": {"content": content}}]}
    node = InformationExtractionUpstage()
    parameters = {"inputType": "url", "imageUrl": "https://example.com/a.png"}

    result = await node.execute(make_context(node, [ExecutionItem()], parameters, UpstageStub(response)))

    assert result[0][0].json_["extracted"] == expected


@pytest.mark.asyncio
async def test_generate_schema_with_prompt_passes_binary_through(make_context, document_item):
    generated = {"type": "json_schema", "json_schema": {"name": "document_schema", "schema": INVOICE_SCHEMA}}
    response = {
        "model": "information-extract",
        "choices": [{"message": {"content": json.dumps(generated)}}],
        "usage": {"total_tokens": 10},
    }
    stub = UpstageStub(response)
    node = InformationExtractionUpstage()
    parameters = {"operation": "schema", "prompt": "  Generate a schema for invoices.  "}

    result = await node.execute(make_context(node, [document_item], parameters, stub))

    assert str(stub.requests[0].url) == "https://api.upstage.ai/v1/information-extraction/schema-generation"
    body = stub.json_body()
    assert body["messages"][0] == {"role": "user", "content": "Generate a schema for invoices."}
    assert body["messages"][1]["content"][0]["type"] == "image_url"
    assert "response_format" not in body

    output = result[0][0]
    assert output.json_ == {
        "schema_type": "json_schema",
        "json_schema": generated["json_schema"],
        "raw": generated,
        "model": "information-extract",
        "usage": {"total_tokens": 10},
    }
    assert output.binary == document_item.binary


@pytest.mark.asyncio
async def test_generate_schema_full_mode_passes_binary_through(make_context, document_item):
    node = InformationExtractionUpstage()
    parameters = {"operation": "schema", "returnMode": "full"}

    result = await node.execute(make_context(node, [document_item], parameters, UpstageStub({"choices": []})))

    assert result[0][0].json_ == {"choices": []}
    assert result[0][0].binary == document_item.binary


@pytest.mark.asyncio
async def test_missing_url_under_continue_on_fail(make_context):
    node = InformationExtractionUpstage()
    items = [ExecutionItem(), ExecutionItem()]
    ctx = make_context(
        node, items, {"inputType": "url", "imageUrl": ""}, UpstageStub(EXTRACTION_RESPONSE), continue_on_fail=True
    )

    outputs = (await node.execute(ctx))[0]

    assert [o.json_ for o in outputs] == [{"error": "Image URL is required."}] * 2
    assert [o.paired_item.item for o in outputs] == [0, 1]


@pytest.mark.asyncio
async def test_missing_url_fails_only_that_item(make_context):
    stub = UpstageStub(EXTRACTION_RESPONSE)
    node = InformationExtractionUpstage()
    items = [
        ExecutionItem(parameters={"imageUrl": ""}),
        ExecutionItem(parameters={"imageUrl": "https://example.com/page-2.png"}),
    ]
    parameters = {"inputType": "url", "json_schema": INVOICE_SCHEMA}
    ctx = make_context(node, items, parameters, stub, continue_on_fail=True)

    outputs = (await node.execute(ctx))[0]

    assert outputs[0].json_ == {"error": "Image URL is required."}
    assert outputs[1].json_["extracted"] == {"total": "42.00"}
    assert outputs[1].paired_item.item == 1
    assert len(stub.requests) == 1
    assert stub.json_body()["messages"][0]["content"][0]["image_url"]["url"] == "https://example.com/page-2.png"
