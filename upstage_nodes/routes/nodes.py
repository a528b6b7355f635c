"""
Node Execution Routes

Lists the available Upstage node types and runs one node over a batch of
items. Each call is a single node execution; chaining nodes is the caller's job.
"""

import base64
import binascii
from typing import Any, Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field

from ..exceptions import CredentialError, NodeApiError, NodeOperationError
from ..registry import get_node, list_descriptions
from ..runtime.context import ExecutionContext
from ..runtime.types import BinaryData, ExecutionItem, NodeExecutionData
from ..services.credentials import UPSTAGE_CREDENTIAL_NAME
from ..services.upstage_http import HTTP_TIMEOUT_SECONDS


router = APIRouter(prefix="/api/nodes", tags=["Nodes"])


class BinaryPayload(BaseModel):
    """A binary attachment, base64-encoded"""
    data: str = Field(..., description="Base64-encoded file content")
    fileName: Optional[str] = Field(None, examples=["invoice.pdf"])
    mimeType: Optional[str] = Field(None, examples=["application/pdf"])
    fileSize: Optional[int] = Field(None, description="File size in bytes")


class ItemPayload(BaseModel):
    """One input item"""
    json_: Dict[str, Any] = Field(default_factory=dict, alias="json")
    binary: Optional[Dict[str, BinaryPayload]] = None
    parameters: Optional[Dict[str, Any]] = Field(
        None,
        description="Parameter overrides for this item only",
        examples=[{"imageUrl": "https://example.com/page-1.png"}],
    )


class ExecuteRequest(BaseModel):
    """Request to execute a node over a batch of items"""
    parameters: Dict[str, Any] = Field(
        default_factory=dict,
        description="Node parameters; omitted ones use their declared defaults",
        examples=[{"returnMode": "text"}],
    )
    items: List[ItemPayload] = Field(default_factory=list)
    continueOnFail: bool = Field(
        default=False,
        description="Emit an error item for a failed item instead of failing the whole batch",
    )


class ExecuteResponse(BaseModel):
    """Output items, one per input item"""
    items: List[Dict[str, Any]]


async def get_http_client():
    """Shared httpx client for the duration of one request."""
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as client:
        yield client


def _to_item(payload: ItemPayload) -> ExecutionItem:
    binary = None
    if payload.binary:
        binary = {}
        for name, attachment in payload.binary.items():
            try:
                data = base64.b64decode(attachment.data, validate=True)
            except (binascii.Error, ValueError):
                raise HTTPException(status_code=400, detail=f'Binary property "{name}" is not valid base64')
            binary[name] = BinaryData(
                data=data,
                file_name=attachment.fileName,
                mime_type=attachment.mimeType,
                file_size=attachment.fileSize if attachment.fileSize is not None else len(data),
            )
    return ExecutionItem(json=payload.json_, binary=binary, parameters=payload.parameters)


def _serialize(output: NodeExecutionData) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "json": output.json_,
        "pairedItem": {"item": output.paired_item.item},
    }
    if output.binary:
        result["binary"] = {
            name: {
                "data": base64.b64encode(attachment.data).decode("ascii"),
                "fileName": attachment.file_name,
                "mimeType": attachment.mime_type,
                "fileSize": attachment.file_size,
            }
            for name, attachment in output.binary.items()
        }
    return result


@router.get("")
def list_nodes():
    """List descriptors of every available node type."""
    return [description.to_host() for description in list_descriptions()]


@router.get("/{node_type}")
def get_node_description(node_type: str):
    """Get the descriptor of one node type."""
    node = get_node(node_type)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Unknown node type: {node_type}")
    return node.description.to_host()


@router.post("/{node_type}/execute", response_model=ExecuteResponse)
async def execute_node(
    node_type: str,
    request: ExecuteRequest,
    x_upstage_api_key: Optional[str] = Header(None, alias="X-Upstage-Api-Key"),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """
    Execute a node over the supplied items.

    The Upstage API key comes from the X-Upstage-Api-Key header, or from
    UPSTAGE_API_KEY when the header is absent.

    Errors:
        - 400: Invalid input or configuration
        - 401: No API key available
        - 404: Unknown node type
        - 502: Upstage API error
    """
    node = get_node(node_type)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Unknown node type: {node_type}")

    credential_overrides = None
    if x_upstage_api_key:
        credential_overrides = {UPSTAGE_CREDENTIAL_NAME: {"api_key": x_upstage_api_key}}

    ctx = ExecutionContext(
        node.description,
        [_to_item(item) for item in request.items],
        parameters=request.parameters,
        continue_on_fail=request.continueOnFail,
        credential_overrides=credential_overrides,
        http_client=http_client,
    )

    try:
        branches = await node.execute(ctx)
    except CredentialError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except NodeApiError as e:
        raise HTTPException(
            status_code=502,
            detail={"message": str(e), "statusCode": e.status_code, "code": e.code},
        )
    except NodeOperationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Unexpected error: {str(e)}")

    return {"items": [_serialize(output) for output in branches[0]]}
