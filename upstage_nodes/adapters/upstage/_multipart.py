"""
multipart/form-data body construction for Upstage upload endpoints.

The whole body is built in memory; Upstage document endpoints take a single
file part named "document" next to plain string fields.
"""

import secrets
from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass
class MultipartFile:
    """File part of a multipart body."""
    data: bytes
    filename: str = "upload"
    content_type: str = "application/octet-stream"


def _new_boundary() -> str:
    return "----WebKitFormBoundary" + secrets.token_hex(12)


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', "%22").replace("\r", "%0D").replace("\n", "%0A")


def build_multipart_form_data(
    fields: Dict[str, str],
    file: MultipartFile,
    file_field: str = "document",
) -> Tuple[bytes, str]:
    """
    Build a multipart/form-data body.

    Args:
        fields: Scalar form fields (name -> string value), emitted in order
        file: The file part
        file_field: Form name of the file part

    Returns:
        (body, content_type) where content_type carries the boundary

    Example:
        body, content_type = build_multipart_form_data(
            {"model": "ocr"},
            MultipartFile(data=pdf_bytes, filename="invoice.pdf", content_type="application/pdf"),
        )
    """
    boundary = _new_boundary()
    parts = []

    for name, value in fields.items():
        parts.append(
            (
                f"--{boundary}\r\n"
                f'Content-Disposition: form-data; name="{_quote(name)}"\r\n\r\n'
                f"{value}\r\n"
            ).encode("utf-8")
        )

    parts.append(
        (
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{_quote(file_field)}"; filename="{_quote(file.filename)}"\r\n'
            f"Content-Type: {file.content_type}\r\n\r\n"
        ).encode("utf-8")
    )
    parts.append(file.data)
    parts.append(b"\r\n")
    parts.append(f"--{boundary}--\r\n".encode("utf-8"))

    return b"".join(parts), f"multipart/form-data; boundary={boundary}"
