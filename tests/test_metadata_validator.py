import aiohttp
import pytest
from aiohttp import test_utils, web

from core.errors import InvalidMetadataDocument
from tokens.metadata_validator import validate_metadata_uri

DOCUMENT = {
    "name": "Token_001",
    "symbol": "BCS",
    "description": "Test token",
    "image": "https://example.com/image.png",
}


@pytest.fixture
async def metadata_server():
    async def complete(_request):
        return web.json_response(DOCUMENT)

    async def incomplete(_request):
        return web.json_response({"name": "Token_001", "symbol": "BCS"})

    async def not_json(_request):
        return web.Response(text="<html>hello</html>", content_type="text/html")

    async def listing(_request):
        return web.json_response([DOCUMENT])

    app = web.Application()
    app.router.add_get("/complete", complete)
    app.router.add_get("/incomplete", incomplete)
    app.router.add_get("/html", not_json)
    app.router.add_get("/list", listing)

    server = test_utils.TestServer(app)
    await server.start_server()
    async with aiohttp.ClientSession() as session:
        yield server, session
    await server.close()


async def test_complete_document_is_accepted(metadata_server):
    server, session = metadata_server
    document = await validate_metadata_uri(
        session, str(server.make_url("/complete")), "Token_001", "BCS"
    )
    assert document == DOCUMENT


async def test_name_mismatch_is_only_logged(metadata_server):
    server, session = metadata_server
    document = await validate_metadata_uri(
        session, str(server.make_url("/complete")), "Other", "OTH"
    )
    assert document["name"] == "Token_001"


async def test_missing_image_is_rejected(metadata_server):
    server, session = metadata_server
    with pytest.raises(InvalidMetadataDocument) as exc_info:
        await validate_metadata_uri(
            session, str(server.make_url("/incomplete")), "Token_001", "BCS"
        )
    assert exc_info.value.detail["missing"] == "image"


@pytest.mark.parametrize("path", ["/missing", "/html", "/list"])
async def test_unusable_document_is_rejected(metadata_server, path):
    server, session = metadata_server
    with pytest.raises(InvalidMetadataDocument):
        await validate_metadata_uri(session, str(server.make_url(path)), "Token_001", "BCS")
