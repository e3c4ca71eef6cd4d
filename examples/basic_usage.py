"""
Basic http_message_core example.

This example demonstrates how to build requests and responses through
HttpFactory, render a request as HTTP/1.1 bytes and turn raw bytes back
into a server request with uploaded files.
"""

import logging
import tempfile
from pathlib import Path

from http_message_core import (
    EnvironmentSnapshot,
    HttpFactory,
    parse_server_request,
    serialize_request,
)

# Configure logging
logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


def client_request(factory: HttpFactory) -> bytes:
    """Demonstrate building and serializing a client request."""
    logger.info("Building client request...")

    request = (
        factory.create_request("POST", "http://example.com/api/items?draft=1")
        .with_header("Content-Type", "application/json")
        .with_body(factory.create_stream('{"name": "widget"}'))
    )

    data = serialize_request(request)
    logger.info(f"Serialized request:\n{data.decode('latin-1')}")
    return data


def server_side(factory: HttpFactory, data: bytes) -> None:
    """Demonstrate parsing raw bytes into a server request."""
    logger.info("Parsing raw request...")

    request = parse_server_request(data, factory=factory)
    request = request.with_attribute("user", "alice")

    logger.info(f"Method: {request.method}")
    logger.info(f"URI: {request.uri}")
    logger.info(f"Query params: {dict(request.query_params)}")
    logger.info(f"Body: {request.body.to_string()}")
    logger.info(f"User attribute: {request.get_attribute('user')}")

    response = factory.create_response(201).with_header("Location", "/api/items/1")
    logger.info(f"Response: {response.status_code} {response.reason_phrase}")


def uploaded_files(factory: HttpFactory) -> None:
    """Demonstrate uploaded files from an environment snapshot."""
    logger.info("Handling uploaded files...")

    with tempfile.TemporaryDirectory() as directory:
        source = Path(directory) / "upload.tmp"
        source.write_bytes(b"%PDF-1.4 example")

        snapshot = EnvironmentSnapshot(
            method="POST",
            target="/upload",
            headers=[("Host", "example.com")],
            files={
                "document": {
                    "tmp_name": str(source),
                    "size": source.stat().st_size,
                    "error": 0,
                    "name": "report.pdf",
                    "type": "application/pdf",
                }
            },
        )
        request = factory.create_server_request_from_globals(snapshot)

        document = request.uploaded_files["document"]
        target = Path(directory) / "stored.pdf"
        document.move_to(target)

        logger.info(f"Stored {document.client_filename} ({document.size} bytes) at {target}")
        logger.info(f"Moved: {document.moved}")


def main():
    """Run all examples."""
    logger.info("Starting http_message_core examples")

    factory = HttpFactory()
    data = client_request(factory)
    server_side(factory, data)
    uploaded_files(factory)

    logger.info("All examples completed")


if __name__ == "__main__":
    main()
