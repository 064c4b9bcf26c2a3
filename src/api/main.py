"""
CountyFix - REST API

FastAPI application for civic issue reports: submission, the public feed,
moderation, user messages and the county leaderboard.

Run with: uvicorn src.api.main:app --reload
"""

import logging
from datetime import datetime
from typing import Generator, List, Optional

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.alerts.messages import MessageService
from src.analysis.leaderboard import compute_leaderboard
from src.auth.session import SessionContext, SessionResolver
from src.core.config import settings
from src.core.constants import IRISH_COUNTIES, ISSUE_CATEGORIES
from src.core.errors import CountyFixError, RateLimitExceeded, VerificationError
from src.core.logging import setup_logging
from src.crowdsource.counties import county_options, is_valid_county
from src.crowdsource.deduplication import GeoLocation
from src.crowdsource.feed import SORT_NEWEST, SORT_UPVOTES, FeedFilter, UpvoteService, list_feed
from src.crowdsource.image_verification import ImageVerificationClient
from src.crowdsource.report_handler import ReportDraft, ReportHandler, generate_submission_id
from src.database.connection import DatabaseConnection, get_db, get_session
from src.database.models import Report
from src.ml.image_classifier import ImageClassifier
from src.moderation.state_machine import ModerationService
from src.storage.image_store import ImageStore

setup_logging()
logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# FastAPI app
app = FastAPI(
    title="CountyFix",
    description="Report, moderate and track local civic issues across Irish counties",
    version=VERSION,
    debug=settings.debug,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Report photos
app.mount(
    settings.image_base_url,
    StaticFiles(directory=settings.image_store_dir, check_dir=False),
    name="images",
)


@app.exception_handler(CountyFixError)
async def countyfix_error_handler(request: Request, exc: CountyFixError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ============================================================================
# Pydantic Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str
    database: bool


class VerifyImageRequest(BaseModel):
    """Image relevance check."""
    imageBase64: Optional[str] = None
    category: Optional[str] = None


class ValidateCountyRequest(BaseModel):
    county: Optional[str] = None


class DeclineRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class RegisterUserRequest(BaseModel):
    """Profile created after sign-up."""
    email: Optional[str] = None
    displayName: Optional[str] = Field(default=None, max_length=100)


# ============================================================================
# Dependencies
# ============================================================================

def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller uid, set by the authenticating proxy."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def get_context(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_session)
) -> SessionContext:
    return SessionResolver(db).resolve(user_id)


def get_image_store() -> ImageStore:
    return ImageStore()


def get_verifier() -> Generator[ImageVerificationClient, None, None]:
    client = ImageVerificationClient()
    try:
        yield client
    finally:
        client.close()


def get_classifier() -> ImageClassifier:
    return ImageClassifier()


def _reports(items: List[Report]) -> dict:
    return {"count": len(items), "reports": [r.to_dict() for r in items]}


# ============================================================================
# System Routes
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
def health_check(database: DatabaseConnection = Depends(get_db)):
    """Check API and database health."""
    database_ok = database.check_connection()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        database=database_ok,
        version=VERSION,
        timestamp=datetime.utcnow().isoformat(),
    )


# ============================================================================
# Verification Routes
# ============================================================================

@app.options("/api/verify-image", tags=["Verification"])
async def verify_image_preflight():
    return Response(
        status_code=204,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
        },
    )


@app.post("/api/verify-image", tags=["Verification"])
def verify_image(
    request: VerifyImageRequest,
    classifier: ImageClassifier = Depends(get_classifier)
):
    """
    Ask the classifier whether a photo matches an issue category.

    Returns `{"isVerified": bool}`. A provider rate limit is a 429 so the
    caller can back off and retry.
    """
    if not request.imageBase64 or not request.category:
        return JSONResponse(status_code=400, content={"error": "Missing required fields"})

    try:
        verdict = classifier.classify(request.imageBase64, request.category)
    except RateLimitExceeded as e:
        return JSONResponse(status_code=429, content={"error": e.message or "Rate limit exceeded"})
    except VerificationError as e:
        logger.error(f"Error verifying image: {e}")
        return JSONResponse(status_code=500, content={"error": e.message or "Failed to verify image"})

    return {"isVerified": verdict}


@app.post("/api/validate-county", tags=["Verification"])
async def validate_county(request: ValidateCountyRequest):
    """Check a county against the reference list; also returns the list."""
    if not request.county:
        return JSONResponse(status_code=400, content={"error": "County is required"})

    return {"isValid": is_valid_county(request.county), "counties": IRISH_COUNTIES}


# ============================================================================
# Reference Data
# ============================================================================

@app.get("/api/v1/categories", tags=["Reference"])
async def list_categories():
    return {"categories": ISSUE_CATEGORIES}


@app.get("/api/v1/counties", tags=["Reference"])
def list_counties(db: Session = Depends(get_session)):
    """Counties for filters: reference list plus any seen on stored reports."""
    seen = db.scalars(select(Report.county).distinct())
    return {"counties": county_options(seen)}


# ============================================================================
# Report Routes
# ============================================================================

@app.post("/api/v1/reports", tags=["Reports"])
def submit_report(
    image: Optional[UploadFile] = File(None),
    category: str = Form(""),
    description: str = Form(""),
    address_line1: str = Form(""),
    address_line2: Optional[str] = Form(None),
    county: str = Form(""),
    eircode: str = Form(""),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    accuracy: Optional[float] = Form(None),
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
    image_store: ImageStore = Depends(get_image_store),
    verifier: ImageVerificationClient = Depends(get_verifier),
):
    """
    Submit a new issue report with its photo.

    201 with the report when accepted. 200 with `status: rejected` and a
    fresh `submissionId` when the photo does not match the category.
    Submission ids are always generated here, never taken from the form.
    """
    location = None
    if latitude is not None and longitude is not None:
        location = GeoLocation(latitude=latitude, longitude=longitude, accuracy=accuracy)

    draft = ReportDraft(
        submission_id=generate_submission_id(),
        image=image.file.read() if image is not None else None,
        category=category,
        description=description,
        address_line1=address_line1,
        address_line2=address_line2,
        county=county,
        eircode=eircode,
        location=location,
    )

    handler = ReportHandler(db, image_store, verifier)
    outcome = handler.submit(ctx, draft)

    return JSONResponse(
        status_code=201 if outcome.submitted else 200,
        content=outcome.to_dict(),
    )


@app.get("/api/v1/reports/active", tags=["Reports"])
def get_active_report(
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
    image_store: ImageStore = Depends(get_image_store),
):
    """The caller's pending report, if any."""
    handler = ReportHandler(db, image_store, verifier=None)
    report = handler.get_active_report(ctx.user_id)
    return {"report": report.to_dict() if report else None}


@app.get("/api/v1/reports/history", tags=["Reports"])
def get_report_history(
    limit: int = Query(10, ge=1, le=50),
    before: Optional[datetime] = Query(None, description="Timestamp cursor"),
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
    image_store: ImageStore = Depends(get_image_store),
):
    """The caller's approved and completed reports, newest first."""
    handler = ReportHandler(db, image_store, verifier=None)
    reports = handler.list_user_history(ctx.user_id, limit=limit, before=before)
    response = _reports(reports)
    response["nextCursor"] = (
        reports[-1].timestamp.isoformat() if len(reports) == limit else None
    )
    return response


@app.delete("/api/v1/reports/{doc_id}", tags=["Reports"])
def delete_report(
    doc_id: str,
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
    image_store: ImageStore = Depends(get_image_store),
):
    """Delete the caller's own pending report."""
    handler = ReportHandler(db, image_store, verifier=None)
    report = handler.delete_own_report(ctx, doc_id)
    return {"deleted": True, "reportId": report.id, "docId": doc_id}


# ============================================================================
# Feed Routes
# ============================================================================

@app.get("/api/v1/feed", tags=["Feed"])
def get_feed(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    county: Optional[str] = Query(None),
    sort_by: str = Query(SORT_UPVOTES, pattern=f"^({SORT_UPVOTES}|{SORT_NEWEST})$"),
    db: Session = Depends(get_session),
):
    """Approved reports, filtered and sorted."""
    feed_filter = FeedFilter(search=search, category=category, county=county, sort_by=sort_by)
    return _reports(list_feed(db, feed_filter))


@app.post("/api/v1/reports/{doc_id}/upvote", tags=["Feed"])
def toggle_upvote(
    doc_id: str,
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
):
    return UpvoteService(db).toggle(ctx, doc_id).to_dict()


@app.get("/api/v1/upvotes", tags=["Feed"])
def get_upvotes(
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
):
    """The caller's upvotes keyed by report id."""
    return {"upvotes": UpvoteService(db).get_user_upvotes(ctx.user_id)}


# ============================================================================
# Moderation Routes
# ============================================================================

@app.get("/api/v1/moderation/pending", tags=["Moderation"])
def list_pending_reports(
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
):
    return _reports(ModerationService(db).list_pending(ctx))


@app.get("/api/v1/moderation/assigned", tags=["Moderation"])
def list_assigned_reports(
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
):
    return _reports(ModerationService(db).list_assigned(ctx))


@app.post("/api/v1/moderation/{doc_id}/approve", tags=["Moderation"])
def approve_report(
    doc_id: str,
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
):
    return ModerationService(db).approve(ctx, doc_id).to_dict()


@app.post("/api/v1/moderation/{doc_id}/decline", tags=["Moderation"])
def decline_report(
    doc_id: str,
    request: Optional[DeclineRequest] = None,
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
):
    reason = request.reason if request else None
    return ModerationService(db).decline(ctx, doc_id, reason=reason).to_dict()


@app.post("/api/v1/moderation/{doc_id}/assign", tags=["Moderation"])
def assign_report(
    doc_id: str,
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
):
    return ModerationService(db).assign(ctx, doc_id).to_dict()


@app.post("/api/v1/moderation/{doc_id}/complete", tags=["Moderation"])
def complete_report(
    doc_id: str,
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
):
    return ModerationService(db).complete(ctx, doc_id).to_dict()


# ============================================================================
# Message Routes
# ============================================================================

@app.get("/api/v1/messages", tags=["Messages"])
def list_messages(
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
):
    """The caller's unexpired messages."""
    messages = MessageService(db).list_active(ctx.user_id)
    return {"count": len(messages), "messages": [m.to_dict() for m in messages]}


@app.post("/api/v1/messages/{message_id}/read", tags=["Messages"])
def mark_message_read(
    message_id: str,
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
):
    return MessageService(db).mark_read(ctx, message_id).to_dict()


@app.delete("/api/v1/messages/{message_id}", tags=["Messages"])
def dismiss_message(
    message_id: str,
    ctx: SessionContext = Depends(get_context),
    db: Session = Depends(get_session),
):
    MessageService(db).dismiss(ctx, message_id)
    return {"dismissed": True, "id": message_id}


# ============================================================================
# Leaderboard & Users
# ============================================================================

@app.get("/api/v1/leaderboard", tags=["Leaderboard"])
def get_leaderboard(db: Session = Depends(get_session)):
    """Counties ranked by completed reports."""
    entries = compute_leaderboard(db)
    return {"count": len(entries), "leaderboard": [e.to_dict() for e in entries]}


@app.post("/api/v1/users", status_code=201, tags=["Users"])
def register_user(
    request: RegisterUserRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_session),
):
    """Create the caller's profile after sign-up. Idempotent."""
    user = SessionResolver(db).register(user_id, email=request.email, display_name=request.displayName)
    return user.to_dict()


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
