"""
FastAPI application exposing the facilitator, bundler proxy and gacha endpoints
"""

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from x402_relay.config import FacilitatorSettings, NetworkConfig
from x402_relay.content import FortuneProvider
from x402_relay.exceptions import (
    BadRequest,
    ConfigurationError,
    TransactionFailed,
    UnsupportedNetworkError,
    X402Error,
)
from x402_relay.mechanisms.exact import MetaTxRelayer
from x402_relay.mechanisms.userop import OperationBuilder, OperationSubmitter
from x402_relay.oracle import ChainlinkFeedReader, PriceOracleCache
from x402_relay.server import PaymentNegotiator
from x402_relay.signers.facilitator import EvmFacilitatorSigner
from x402_relay.tokens import DEFAULT_TOKEN
from x402_relay.types import PrepareTransferRequest, RelayRequest, StatusResponse
from x402_relay.utils.bundler import BundlerClient

logger = logging.getLogger(__name__)

PAYMENT_REQUIRED_HEADER = "X-Payment-Required"
PAYMENT_INFO_HEADER = "X-Payment-Info"


@dataclass
class RelayServices:
    """Collaborators behind the HTTP surface; None where not configured."""

    settings: FacilitatorSettings
    negotiator: PaymentNegotiator
    fortunes: FortuneProvider
    relayer: MetaTxRelayer | None = None
    bundler: BundlerClient | None = None
    builder: OperationBuilder | None = None
    submitter: OperationSubmitter | None = None

    @classmethod
    def from_settings(cls, settings: FacilitatorSettings) -> "RelayServices":
        relayer = None
        if settings.facilitator_configured:
            signer = EvmFacilitatorSigner.from_private_key(settings.facilitator_private_key)
            relayer = MetaTxRelayer(signer)

        bundler = builder = submitter = None
        if settings.bundler_configured:
            bundler = BundlerClient(settings.resolve_bundler_url())
            builder = OperationBuilder(
                bundler, network=NetworkConfig.get_bundler_network(settings.bundler_chain)
            )
            submitter = OperationSubmitter(bundler)

        oracle = PriceOracleCache(ChainlinkFeedReader(rpc_url=settings.oracle_rpc_url))
        return cls(
            settings=settings,
            negotiator=PaymentNegotiator(
                price_usd=settings.gacha_price_usd,
                recipient=settings.gacha_recipient,
                oracle=oracle,
            ),
            fortunes=FortuneProvider(api_key=settings.fortune_api_key),
            relayer=relayer,
            bundler=bundler,
            builder=builder,
            submitter=submitter,
        )

    def require_relayer(self) -> MetaTxRelayer:
        if self.relayer is None:
            raise ConfigurationError("Facilitator not configured. Set FACILITATOR_PRIVATE_KEY")
        return self.relayer

    def require_bundler(self, message: str = "Bundler not configured") -> BundlerClient:
        if self.bundler is None:
            raise ConfigurationError(message)
        return self.bundler

    async def close(self) -> None:
        if self.bundler is not None:
            await self.bundler.close()
        await self.fortunes.close()


def create_app(
    settings: FacilitatorSettings | None = None,
    services: RelayServices | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Process settings; loaded from the environment when omitted
        services: Pre-built collaborators (tests inject mocks here)
    """
    if services is None:
        services = RelayServices.from_settings(settings or FacilitatorSettings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await services.close()

    app = FastAPI(
        title="X402 Relay",
        description="Gasless payment facilitator for ERC-3009 and ERC-4337 payers",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(X402Error)
    async def x402_error_handler(request: Request, exc: X402Error) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(content=exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = BadRequest("Invalid request body", details=str(exc.errors()))
        return JSONResponse(content=error.to_dict(), status_code=error.status_code)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        body = {"error": "Internal server error", "reason": "internal_error", "details": str(exc)}
        return JSONResponse(content=body, status_code=500)

    # ------------------------------------------------------------------
    # Facilitator: ERC-3009
    # ------------------------------------------------------------------

    @app.post("/api/facilitator/erc3009")
    async def relay_erc3009(request: RelayRequest):
        """Execute a signed transferWithAuthorization"""
        result = await services.require_relayer().relay(request)
        return result.model_dump(by_alias=True)

    @app.get("/api/facilitator/erc3009")
    async def erc3009_status():
        """Status probe; makes no network calls"""
        if services.relayer is None:
            status = StatusResponse(configured=False, message="FACILITATOR_PRIVATE_KEY not set")
        else:
            status = StatusResponse(
                configured=True,
                address=services.relayer.get_address(),
                network="multi-chain",
            )
        return status.model_dump(exclude_none=True)

    # ------------------------------------------------------------------
    # Facilitator: ERC-4337
    # ------------------------------------------------------------------

    @app.post("/api/facilitator/prepare")
    async def prepare_operation(request: PrepareTransferRequest):
        """Prepare an unsigned v0.6 transfer UserOperation"""
        services.require_bundler("Facilitator not configured")
        prepared = await services.builder.prepare_transfer(
            request.sender, request.to, request.amount, request.token
        )
        return prepared.model_dump(by_alias=True, exclude_none=True)

    @app.post("/api/facilitator/submit")
    async def submit_operation(body: dict[str, Any] = Body(...)):
        """Submit a signed UserOperation (v0.6 or v0.7)"""
        services.require_bundler("Facilitator not configured")
        user_op = body.get("userOperation")
        if not isinstance(user_op, dict) or not user_op.get("signature"):
            raise BadRequest("Signed userOperation is required")
        result = await services.submitter.submit(user_op)
        return result.model_dump(by_alias=True, exclude_none=True)

    @app.post("/api/facilitator")
    async def submit_for_network(body: dict[str, Any] = Body(...)):
        """Submit a signed UserOperation on the configured bundler network"""
        chain = services.settings.bundler_chain
        if body.get("network") != chain:
            raise UnsupportedNetworkError(f"Unsupported network. Only {chain} is supported.")
        services.require_bundler()
        user_op = body.get("userOperation")
        if not user_op:
            raise BadRequest("userOperation required in payload")
        result = await services.submitter.submit(user_op)
        return result.model_dump(by_alias=True, exclude_none=True)

    @app.get("/api/facilitator")
    async def bundler_status():
        if services.bundler is None:
            status = StatusResponse(configured=False, message="Bundler API key not configured")
        else:
            status = StatusResponse(configured=True, network=services.settings.bundler_chain)
        return status.model_dump(exclude_none=True)

    @app.post("/api/pimlico")
    async def bundler_proxy(body: Any = Body(...)):
        """Forward a raw JSON-RPC request to the bundler"""
        bundler = services.require_bundler("Pimlico API not configured")
        return JSONResponse(content=await bundler.forward(body))

    @app.get("/api/pimlico")
    async def bundler_proxy_status():
        return {
            "configured": services.bundler is not None,
            "network": services.settings.bundler_chain,
        }

    # ------------------------------------------------------------------
    # Gacha
    # ------------------------------------------------------------------

    @app.get("/api/gacha")
    async def gacha_payment_required():
        """Always 402: the payer picks a token from ``paymentInfo``"""
        info = (await services.negotiator.payment_info()).model_dump(
            by_alias=True, exclude_none=True
        )
        return JSONResponse(
            content={"error": "Payment Required", "paymentInfo": info},
            status_code=402,
            headers={
                PAYMENT_REQUIRED_HEADER: "true",
                PAYMENT_INFO_HEADER: json.dumps(info),
            },
        )

    @app.post("/api/gacha")
    async def gacha_pay(request: RelayRequest):
        """Validate and relay an ERC-3009 payment, then deliver a fortune"""
        relayer = services.require_relayer()
        token = request.token or DEFAULT_TOKEN

        auth = relayer.parse_authorization(request)
        await services.negotiator.validate(auth.to, auth.value, token)

        logger.info(
            "Processing gacha payment (%s): from=%s value=%s", token, auth.from_address, auth.value
        )
        result = await relayer.relay(request.model_copy(update={"token": token}))
        if result.status != "confirmed":
            raise TransactionFailed(result.transaction_hash)

        fortune = await services.fortunes.draw()
        return {
            "success": True,
            "transactionHash": result.transaction_hash,
            "blockNumber": result.block_number,
            "fortune": fortune.model_dump(),
            "paidWith": token.upper(),
            "paidAmount": auth.value,
        }

    @app.get("/api/gacha/fortune")
    async def gacha_fortune():
        fortune = await services.fortunes.draw()
        return {"fortune": fortune.model_dump()}

    @app.get("/api/gacha/passkey")
    async def gacha_passkey_info():
        requirement = await services.negotiator.requirement("USDC")
        return {
            "recipient": services.negotiator.recipient,
            "amount": str(requirement.required_amount),
            "configured": services.bundler is not None,
        }

    @app.post("/api/gacha/passkey")
    async def gacha_passkey(body: dict[str, Any] = Body(...)):
        """Two-step passkey flow: ``prepare`` a v0.7 operation, then ``submit`` it signed"""
        services.require_bundler("Paymaster not configured")
        action = body.get("action")
        user_op = body.get("userOp")

        if action == "prepare":
            if not isinstance(user_op, dict):
                raise BadRequest("Missing userOp fields")
            prepared = await services.builder.prepare_call(
                sender=user_op.get("sender"),
                call_data=user_op.get("callData"),
                nonce=user_op.get("nonce"),
                factory=user_op.get("factory"),
                factory_data=user_op.get("factoryData"),
                signature=user_op.get("signature"),
            )
            return {
                "success": True,
                "preparedUserOp": prepared.user_operation,
                "state": prepared.state,
                "entryPoint": prepared.entry_point,
            }

        if action == "submit":
            if not isinstance(user_op, dict) or not user_op.get("signature"):
                raise BadRequest("Missing signed userOp")
            result = await services.submitter.submit(user_op)
            if result.status == "pending":
                return JSONResponse(
                    content=result.model_dump(by_alias=True, exclude_none=True),
                    status_code=202,
                )
            if result.status == "failed":
                raise TransactionFailed(result.transaction_hash, "UserOperation reverted")

            fortune = await services.fortunes.draw()
            return {
                "success": True,
                "userOpHash": result.user_op_hash,
                "transactionHash": result.transaction_hash,
                "fortune": fortune.model_dump(),
            }

        raise BadRequest("Invalid action")

    return app
