"""FastAPI entry point. Wires the OTP Insight pipeline behind x-api-key auth.
Exposes GET / (health), POST /analyze, POST /interaction, GET /statistics,
GET /status and DELETE /data."""

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.auth import verify_api_key
from app.models import AnalyzeRequest, AnalyzeResponse, ErrorResponse, InteractionRequest
from otp_insight.config import ServiceConfig
from otp_insight.errors import AnalysisFailedError, MalformedInputError, ModelNotReadyError
from otp_insight.models import Message
from otp_insight.service import OtpInsightService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="OTP Insight API",
    description="SMS / OTP fraud-risk analysis: sender verification, content extraction, heuristic scoring",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

service = OtpInsightService(ServiceConfig.from_env())


def get_service() -> OtpInsightService:
    return service


@app.on_event("startup")
async def _on_startup() -> None:
    await service.initialize()
    logger.info(f"OTP Insight API v{VERSION} started | Docs: /docs | Health: GET /")


# ==================== Error Mapping ====================

@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.error(f"422 VALIDATION ERROR | {request.url.path} | {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={
            "status": "error",
            "message": "Invalid request payload.",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=message).model_dump())


@app.exception_handler(MalformedInputError)
async def _malformed_input_handler(request: Request, exc: MalformedInputError) -> JSONResponse:
    logger.warning(f"Rejected malformed input on {request.url.path}: {exc}")
    return _error_response(422, str(exc))


@app.exception_handler(ModelNotReadyError)
async def _not_ready_handler(request: Request, exc: ModelNotReadyError) -> JSONResponse:
    logger.error(f"Analysis requested before scorer was ready: {exc}")
    return _error_response(503, str(exc))


@app.exception_handler(AnalysisFailedError)
async def _analysis_failed_handler(request: Request, exc: AnalysisFailedError) -> JSONResponse:
    # Never report a failed analysis as a verdict
    return _error_response(500, "Analysis failed. Treat this message as unverified.")


# ==================== Routes ====================

@app.get("/")
async def health_check(svc: OtpInsightService = Depends(get_service)) -> dict:
    return {
        "status": "online",
        "service": "OTP Insight API",
        "version": VERSION,
        "ready": svc.initialized,
    }


@app.post("/analyze", response_model=AnalyzeResponse)
async def analyze_message(
    request: AnalyzeRequest,
    api_key: str = Depends(verify_api_key),
    svc: OtpInsightService = Depends(get_service),
) -> AnalyzeResponse:
    """Run one message through the analysis pipeline and return its verdict."""
    message = Message.create(request.text, sender=request.sender, arrival_time=request.timestamp)
    result = svc.analyze(message, send_notification=request.sendNotification)
    return AnalyzeResponse(status="success", **result.as_dict())


@app.post("/interaction")
async def record_interaction(
    request: Optional[InteractionRequest] = None,
    api_key: str = Depends(verify_api_key),
    svc: OtpInsightService = Depends(get_service),
) -> dict:
    ts = svc.record_interaction(request.timestamp if request else None)
    return {"status": "success", "lastInteraction": ts.isoformat()}


@app.get("/statistics")
async def statistics(
    api_key: str = Depends(verify_api_key),
    svc: OtpInsightService = Depends(get_service),
) -> dict:
    return {"status": "success", **svc.statistics()}


@app.get("/status")
async def service_status(
    api_key: str = Depends(verify_api_key),
    svc: OtpInsightService = Depends(get_service),
) -> dict:
    return {"status": "success", **svc.status()}


@app.delete("/data")
async def clear_data(
    api_key: str = Depends(verify_api_key),
    svc: OtpInsightService = Depends(get_service),
) -> dict:
    svc.clear_data()
    return {"status": "success"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
