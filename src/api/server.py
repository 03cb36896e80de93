"""
HTTP surface of the token service.

Routes JSON requests to the issuance and transfer orchestrators and maps
the error taxonomy onto status codes.
"""

import json

import aiohttp
from aiohttp import web

from api.schemas import CreateTokenRequest, TransferRequest
from config_loader import ServiceConfig
from core.client import LedgerClient
from core.errors import InvalidInput, TokenServiceError
from core.finalizer import TransactionFinalizer
from core.wallet import resolve_signing_identity
from interfaces.core import RegistryClient
from registry.client import GitHubRegistryClient
from registry.dispatcher import RegistryDispatcher
from tokens.issuer import TokenIssuer, TokenSettings
from tokens.provisioner import AccountProvisioner
from tokens.transfer import TokenTransferer
from utils.logger import get_logger

logger = get_logger(__name__)


def _error_response(error: TokenServiceError, status: int) -> web.Response:
    body = {"success": False, "error": error.message, "kind": error.kind.value}
    if error.detail:
        body["detail"] = error.to_dict()["detail"]
    return web.json_response(body, status=status)


def _unexpected_response(error: Exception) -> web.Response:
    return web.json_response({"success": False, "error": str(error)}, status=500)


async def _read_json(request: web.Request) -> object:
    try:
        return await request.json()
    except json.JSONDecodeError as e:
        raise InvalidInput(f"Invalid JSON body: {e.msg}") from e


class TokenService:
    """Wires the ledger client, orchestrators and registry dispatcher together."""

    def __init__(
        self,
        config: ServiceConfig,
        client: LedgerClient | None = None,
        registry: RegistryClient | None = None,
    ):
        self.config = config
        self.client = client or LedgerClient(
            config.rpc_endpoint,
            commitment=config.commitment,
            confirm_timeout=config.confirm_timeout,
        )
        self.registry = registry or GitHubRegistryClient(
            token=config.registry.github_token,
            owner=config.registry.owner,
            repo=config.registry.repo,
            base_branch=config.registry.base_branch,
            api_url=config.registry.api_url,
        )
        self.finalizer = TransactionFinalizer(self.client, config.skip_preflight)
        self.provisioner = AccountProvisioner(self.client, self.finalizer, config.decimals)
        self.dispatcher = RegistryDispatcher(self.registry, config.registry.max_pending)
        self.transferer = TokenTransferer(self.client, self.finalizer, self.provisioner)
        self.issuer = TokenIssuer(
            self.finalizer,
            self.provisioner,
            TokenSettings(
                metadata_uri=config.metadata_uri,
                logo_uri=config.logo_uri,
                website=config.website,
                decimals=config.decimals,
                seller_fee_basis_points=config.seller_fee_basis_points,
                is_mutable=config.is_mutable,
                tags=config.tags,
                validate_metadata_uri=config.validate_metadata_uri,
            ),
            dispatcher=self.dispatcher,
        )
        self._session: aiohttp.ClientSession | None = None

    async def start(self) -> None:
        self._session = aiohttp.ClientSession()
        self.issuer.http_session = self._session
        await self.dispatcher.start()

    async def stop(self) -> None:
        await self.dispatcher.stop()
        if self._session:
            await self._session.close()
            self._session = None
        await self.client.close()

    # ── handlers ─────────────────────────────────────────────────

    async def create_token(self, request: web.Request) -> web.Response:
        try:
            body = CreateTokenRequest.from_dict(await _read_json(request))
            result = await self.issuer.issue(
                self.config.secret_key, body.name, body.symbol, body.quantity
            )
        except InvalidInput as e:
            logger.warning(f"Rejected create-token request: {e.message}")
            return _error_response(e, 400)
        except TokenServiceError as e:
            logger.error(f"Token creation failed: {e.message}")
            return _error_response(e, 500)
        except Exception as e:
            logger.exception(f"Unexpected error during token creation: {e!s}")
            return _unexpected_response(e)

        return web.json_response(
            {
                "success": True,
                "mint": result.to_dict(),
                "message": "Token created successfully",
            },
            status=201,
        )

    async def transfer(self, request: web.Request) -> web.Response:
        try:
            body = TransferRequest.from_dict(await _read_json(request))
            signer = resolve_signing_identity(self.config.secret_key)
            signature = await self.transferer.transfer(
                signer, body.to_wallet, body.token_mint, body.quantity
            )
        except TokenServiceError as e:
            logger.error(f"Transfer failed: {e.message}")
            return _error_response(e, 400)
        except Exception as e:
            logger.exception(f"Unexpected error during transfer: {e!s}")
            return _unexpected_response(e)

        return web.json_response({"success": True, "signature": str(signature)})

    async def metadata(self, _request: web.Request) -> web.Response:
        if not self.config.metadata_document:
            return web.json_response({"error": "Metadata document not configured"}, status=404)
        return web.json_response(self.config.metadata_document)

    async def health(self, _request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "service": self.config.name})


SERVICE_KEY = web.AppKey("token_service", TokenService)


def create_app(
    config: ServiceConfig,
    client: LedgerClient | None = None,
    registry: RegistryClient | None = None,
) -> web.Application:
    """Build the aiohttp application.

    Args:
        config: Service configuration
        client: Ledger client, built from config when omitted
        registry: Registry client, built from config when omitted

    Returns:
        Configured application with startup/cleanup hooks
    """
    service = TokenService(config, client=client, registry=registry)
    app = web.Application()
    app[SERVICE_KEY] = service

    app.router.add_post("/create-token", service.create_token)
    app.router.add_post("/transfer", service.transfer)
    app.router.add_get("/metadata", service.metadata)
    app.router.add_get("/health", service.health)

    async def on_startup(app: web.Application) -> None:
        await app[SERVICE_KEY].start()

    async def on_cleanup(app: web.Application) -> None:
        await app[SERVICE_KEY].stop()

    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)
    return app
