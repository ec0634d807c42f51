import uuid
from dotenv import load_dotenv

# Load env vars BEFORE imports that might use them
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from gst_review.core.config import LOG_DIR
from gst_review.domain.errors import (
    GSTReviewError,
    InvoiceNotFoundError,
    InvoiceValidationError,
    PersistenceError,
    RequestInFlightError,
    SavedNotApprovedError,
    TransitionError,
)
from gst_review.services.database import close_db, connect_db
from gst_review.utils.logging_config import setup_logging, get_logger, request_id_ctx
from gst_review.api.routes import invoices

# --- Logging Configuration ---
setup_logging(log_dir=LOG_DIR)
logger = get_logger("api")

app = FastAPI(title="GST Invoice Review API")

# --- Middleware ---
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """
    Generates a unique Request ID for every request.
    Injects it into ContextVar for logging.
    Returns X-Request-ID header.
    """
    req_id = str(uuid.uuid4())
    token = request_id_ctx.set(req_id)
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = req_id
        return response
    finally:
        request_id_ctx.reset(token)

# --- CORS Middleware ---
origins = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://localhost:8080",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Error Mapping ---
def _error_response(status_code: int, code: str, exc: Exception, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "code": code,
            "message": str(exc),
            "request_id": request_id_ctx.get(),
            **extra,
        },
    )

@app.exception_handler(InvoiceValidationError)
async def validation_error_handler(request: Request, exc: InvoiceValidationError):
    return _error_response(422, "validation_error", exc, issues=[i.model_dump() for i in exc.issues])

@app.exception_handler(InvoiceNotFoundError)
async def not_found_handler(request: Request, exc: InvoiceNotFoundError):
    return _error_response(404, "not_found", exc)

@app.exception_handler(SavedNotApprovedError)
async def saved_not_approved_handler(request: Request, exc: SavedNotApprovedError):
    # Distinct from a plain transition failure: the data IS saved
    return _error_response(409, "saved_not_approved", exc, saved=True, invoice_status=exc.status)

@app.exception_handler(TransitionError)
async def transition_error_handler(request: Request, exc: TransitionError):
    return _error_response(409, "transition_error", exc, invoice_status=exc.status)

@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    return _error_response(502, "persistence_error", exc)

@app.exception_handler(RequestInFlightError)
async def in_flight_handler(request: Request, exc: RequestInFlightError):
    return _error_response(429, "request_in_flight", exc)

@app.exception_handler(GSTReviewError)
async def review_error_handler(request: Request, exc: GSTReviewError):
    return _error_response(400, "review_error", exc)

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catches all unhandled exceptions.
    Logs full traceback with Request ID.
    """
    logger.exception(f"Unhandled Exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "status": "error",
            "message": "Internal Server Error",
            "detail": str(exc),
            "request_id": request_id_ctx.get(),
        }
    )

@app.on_event("startup")
def startup_event():
    connect_db()

@app.on_event("shutdown")
def shutdown_event():
    close_db()

app.include_router(invoices.router)

@app.get("/health")
async def health():
    return {"status": "ok"}

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
