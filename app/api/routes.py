"""
API Routes - FastAPI endpoints for entitlement verification.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from structlog import get_logger

from app.api.dependencies import EntitlementServiceFactory, get_entitlement_service_factory
from app.config import settings
from app.exceptions import (
    ConfigurationFault,
    InvalidRequestError,
    PersistenceError,
    UpstreamError,
    UpstreamUnavailableError,
)
from app.models.api import ErrorResponse, HealthResponse, VerifyResponse
from app.observability.logging import log_context
from app.observability.metrics import metrics
from app.services.request_validator import parse_verification_request

logger = get_logger(__name__)

router = APIRouter()

MISSING_PARAMETERS_ERROR = "Missing required parameters"
PERSISTENCE_FAILED_ERROR = (
    "Entitlement verified but could not be saved; resubmit verification"
)


def _error_response(status_code: int, error: str, details: object = None) -> JSONResponse:
    """Render an ErrorResponse, omitting details when there are none."""
    content: dict[str, object] = {"error": error}
    if details is not None:
        # Upstream diagnostics are passed through verbatim
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@router.post(
    "/api/verify",
    response_model=VerifyResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def verify_subscription(
    request: Request,
    service_factory: EntitlementServiceFactory = Depends(get_entitlement_service_factory),
) -> VerifyResponse | JSONResponse:
    """
    Verify a subscription purchase token and record the entitlement.

    Flow:
    1. Validate body (JSON object or JSON-encoded string)
    2. Fetch subscription from Google Play
    3. Reconcile into a canonical entitlement
    4. Merge-upsert entitlement onto profile/{userId}

    Each successful call re-verifies and overwrites the entitlement fields,
    including negative outcomes.
    """
    request_id = request.headers.get("X-Request-ID", "unknown")

    try:
        verification = parse_verification_request(await request.body())
    except InvalidRequestError as exc:
        metrics.record_verification("invalid_request")
        logger.warning(
            "verification_request_invalid",
            request_id=request_id,
            reason=exc.message,
            missing_fields=exc.missing_fields,
        )
        if exc.missing_fields:
            return _error_response(
                status.HTTP_400_BAD_REQUEST, MISSING_PARAMETERS_ERROR, exc.message
            )
        return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", exc.message)

    with log_context(
        request_id=request_id,
        user_id=verification.user_id,
        product_id=verification.product_id,
    ):
        try:
            service = service_factory()
            decision = await service.verify(verification)

        except ConfigurationFault as exc:
            metrics.record_verification("configuration_fault")
            logger.error("configuration_fault", setting=exc.setting, error=exc.message)
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR, "Server configuration error"
            )

        except UpstreamError as exc:
            metrics.record_verification("upstream_error")
            logger.error("verification_failed", status=exc.status, error=exc.message)
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message, exc.details
            )

        except UpstreamUnavailableError as exc:
            metrics.record_verification("upstream_unavailable")
            logger.error("verification_failed", error=exc.message)
            return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message)

        except PersistenceError as exc:
            metrics.record_verification("persistence_error")
            logger.error("verification_not_persisted", error=exc.message)
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR, PERSISTENCE_FAILED_ERROR
            )

        except Exception as exc:
            metrics.record_verification("unexpected_error")
            metrics.record_error(type(exc).__name__, "verify")
            logger.exception("verification_unexpected_error")
            return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Verification failed")

    record = decision.record
    if record.entitled:
        return VerifyResponse(active=True, expiry_millis=record.expiry_millis)
    return VerifyResponse(active=False, reason=decision.reason)


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Reports whether credentials are configured without building any client.
    """
    return HealthResponse(
        status="healthy" if settings.credentials_configured else "degraded",
        version=settings.api_version,
        credentials_configured=settings.credentials_configured,
        play_api_version=settings.play_api_version,
    )
