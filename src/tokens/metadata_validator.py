"""
Check that a metadata URI resolves to a usable token document.
"""

import asyncio
import json

import aiohttp

from core.errors import InvalidMetadataDocument
from utils.logger import get_logger

logger = get_logger(__name__)

REQUIRED_DOCUMENT_FIELDS = ("name", "symbol", "image")


async def validate_metadata_uri(
    session: aiohttp.ClientSession,
    uri: str,
    expected_name: str,
    expected_symbol: str,
    timeout: float = 10.0,
) -> dict:
    """Fetch the document behind `uri` and check it before issuing.

    A name or symbol that differs from the request is only logged, since
    one hosted document is commonly shared by several tokens.

    Args:
        session: HTTP session
        uri: Metadata URI written on chain
        expected_name: Token name from the request
        expected_symbol: Token symbol from the request
        timeout: Request timeout in seconds

    Returns:
        The parsed document

    Raises:
        InvalidMetadataDocument: If the document cannot be fetched or lacks
            name, symbol or image
    """
    try:
        async with session.get(uri, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
            response.raise_for_status()
            document = await response.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, json.JSONDecodeError) as e:
        raise InvalidMetadataDocument(
            f"Could not load metadata document ({uri}): {e!s}", uri=uri
        ) from e

    if not isinstance(document, dict):
        raise InvalidMetadataDocument(
            f"Metadata document ({uri}) is not a JSON object", uri=uri
        )

    missing = [name for name in REQUIRED_DOCUMENT_FIELDS if not document.get(name)]
    if missing:
        raise InvalidMetadataDocument(
            f"Incomplete metadata document ({uri}): missing {', '.join(missing)}",
            uri=uri,
            missing=",".join(missing),
        )

    if document["name"] != expected_name or document["symbol"] != expected_symbol:
        logger.warning(
            f"Metadata document (name: {document['name']}, symbol: {document['symbol']}) "
            f"differs from request (name: {expected_name}, symbol: {expected_symbol})"
        )
    return document
