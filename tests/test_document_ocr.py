import httpx
import pytest

from upstage_nodes.adapters.upstage import DocumentOCRUpstage
from upstage_nodes.exceptions import NodeApiError, NodeOperationError
from upstage_nodes.runtime import BinaryData, ExecutionItem

from .conftest import UpstageStub, parse_multipart


OCR_RESPONSE = {
    "apiVersion": "1.1",
    "confidence": 0.97,
    "modelVersion": "ocr-250904",
    "numBilledPages": 2,
    "text": "Hello",
    "pages": [
        {"id": 0, "text": "Hello", "words": [{"id": 0, "text": "Hello", "confidence": 0.99}]},
        {"id": 1, "text": "", "words": [{"id": 0, "text": "World", "confidence": 0.95}]},
    ],
}


@pytest.mark.asyncio
async def test_text_mode_returns_text(make_context, pdf_item):
    stub = UpstageStub(OCR_RESPONSE)
    node = DocumentOCRUpstage()
    ctx = make_context(node, [pdf_item], {"returnMode": "text"}, stub)

    result = await node.execute(ctx)

    assert len(result) == 1
    output = result[0][0]
    assert output.json_ == {"text": "Hello"}
    assert output.paired_item.item == 0
    assert output.binary is None


@pytest.mark.asyncio
async def test_request_is_authenticated_multipart_upload(make_context, pdf_item):
    stub = UpstageStub(OCR_RESPONSE)
    node = DocumentOCRUpstage()
    ctx = make_context(node, [pdf_item], {"model": "ocr-250904", "schema": "google"}, stub)

    await node.execute(ctx)

    request = stub.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.upstage.ai/v1/document-digitization"
    assert request.headers["authorization"] == "Bearer up_test_key"
    fields, file_part = parse_multipart(request)
    assert fields == {"model": "ocr-250904", "schema": "google"}
    assert file_part["name"] == "document"
    assert file_part["filename"] == "invoice.pdf"
    assert file_part["content_type"] == "application/pdf"
    assert file_part["data"] == pdf_item.binary["data"].data


@pytest.mark.asyncio
async def test_empty_schema_is_not_sent(make_context, pdf_item):
    stub = UpstageStub(OCR_RESPONSE)
    node = DocumentOCRUpstage()

    await node.execute(make_context(node, [pdf_item], {}, stub))

    fields, _ = parse_multipart(stub.requests[0])
    assert fields == {"model": "ocr"}


@pytest.mark.asyncio
async def test_projections(make_context, pdf_item):
    node = DocumentOCRUpstage()

    async def run(mode):
        ctx = make_context(node, [pdf_item], {"returnMode": mode}, UpstageStub(OCR_RESPONSE))
        return (await node.execute(ctx))[0][0].json_

    assert await run("full") == OCR_RESPONSE
    assert await run("pages") == {"pages": OCR_RESPONSE["pages"]}
    assert [w["text"] for w in (await run("words"))["words"]] == ["Hello", "World"]
    assert await run("confidence") == {"confidence": 0.97, "modelVersion": "ocr-250904", "numBilledPages": 2}


@pytest.mark.asyncio
async def test_missing_fields_use_defaults(make_context, pdf_item):
    node = DocumentOCRUpstage()

    ctx = make_context(node, [pdf_item], {"returnMode": "confidence"}, UpstageStub({}))
    assert (await node.execute(ctx))[0][0].json_ == {"confidence": 0, "modelVersion": "", "numBilledPages": 0}

    ctx = make_context(node, [pdf_item], {"returnMode": "text"}, UpstageStub({}))
    assert (await node.execute(ctx))[0][0].json_ == {"text": ""}


@pytest.mark.asyncio
async def test_missing_binary_is_wrapped_with_item_index(make_context):
    node = DocumentOCRUpstage()
    stub = UpstageStub(OCR_RESPONSE)
    ctx = make_context(node, [ExecutionItem(json={})], {}, stub)

    with pytest.raises(NodeOperationError) as exc_info:
        await node.execute(ctx)

    assert str(exc_info.value) == 'Upstage Document OCR failed for item 0: No binary data found in property "data".'
    assert stub.requests == []


@pytest.mark.asyncio
async def test_oversized_file_is_rejected(make_context):
    node = DocumentOCRUpstage()
    item = ExecutionItem(binary={"data": BinaryData(data=b"x", file_size=50 * 1024 * 1024 + 1)})
    ctx = make_context(node, [item], {}, continue_on_fail=True)

    output = (await node.execute(ctx))[0][0]

    assert output.json_["error"] == "File size exceeds 50MB limit"
    assert output.json_["error_code"] == "unknown_error"
    assert output.json_["statusCode"] is None


@pytest.mark.asyncio
async def test_api_error_under_continue_on_fail(make_context, pdf_item):
    node = DocumentOCRUpstage()
    stub = UpstageStub({"error": {"message": "Invalid API key", "code": "invalid_api_key"}}, status_code=401)
    ctx = make_context(node, [pdf_item, pdf_item], {"returnMode": "text"}, stub, continue_on_fail=True)

    outputs = (await node.execute(ctx))[0]

    assert [o.paired_item.item for o in outputs] == [0, 1]
    assert outputs[1].json_["statusCode"] == 401
    assert outputs[1].json_["error_code"] == "invalid_api_key"
    assert "Invalid API key" in outputs[1].json_["error"]
    assert "timestamp" in outputs[1].json_


@pytest.mark.asyncio
async def test_api_error_propagates_with_status(make_context, pdf_item):
    node = DocumentOCRUpstage()
    stub = UpstageStub({"error": {"message": "quota exceeded"}}, status_code=429)
    ctx = make_context(node, [pdf_item], {}, stub)

    with pytest.raises(NodeApiError) as exc_info:
        await node.execute(ctx)

    assert exc_info.value.status_code == 429
    assert str(exc_info.value).startswith("Upstage Document OCR failed for item 0: ")


@pytest.mark.asyncio
async def test_non_object_response_is_rejected(make_context, pdf_item):
    node = DocumentOCRUpstage()
    stub = UpstageStub(handler=lambda request: httpx.Response(200, text="plain text"))
    ctx = make_context(node, [pdf_item], {}, stub, continue_on_fail=True)

    output = (await node.execute(ctx))[0][0]

    assert output.json_["error"] == "Invalid response format from Upstage OCR API"


@pytest.mark.asyncio
async def test_failed_item_does_not_stop_the_batch(make_context, pdf_item):
    node = DocumentOCRUpstage()
    stub = UpstageStub(OCR_RESPONSE)
    ctx = make_context(node, [ExecutionItem(), pdf_item], {"returnMode": "text"}, stub, continue_on_fail=True)

    outputs = (await node.execute(ctx))[0]

    assert outputs[0].json_["error"] == 'No binary data found in property "data".'
    assert outputs[0].paired_item.item == 0
    assert outputs[1].json_ == {"text": "Hello"}
    assert outputs[1].paired_item.item == 1
    assert len(stub.requests) == 1


@pytest.mark.asyncio
async def test_words_skips_malformed_pages(make_context, pdf_item):
    response = {"pages": ["not a page", None, {"words": [{"text": "Hi"}]}, {"id": 3}]}
    node = DocumentOCRUpstage()
    ctx = make_context(node, [pdf_item], {"returnMode": "words"}, UpstageStub(response))

    assert (await node.execute(ctx))[0][0].json_ == {"words": [{"text": "Hi"}]}
