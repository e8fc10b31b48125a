"""
FastAPI surface for candidate discovery
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Tuple

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from discovery.auth import validate_token
from discovery.config import settings
from discovery.data_schemas import (
    FilterCriteria, InteractionState, MatchCategorySummary, MatchListResponse,
    MatchStatsResponse, PoolEntry, Preference, Profile,
)
from discovery.engine import DiscoveryEngine
from discovery.errors import (
    ERROR_AUTH_SUBJECT_MISMATCH, ERROR_REQUEST_MALFORMED, ERROR_REQUESTER_PROFILE_MISSING,
    AuthError, DiscoveryError, ForbiddenError, InvalidFilterError, MissingRequesterError,
)
from discovery.events import EventDispatcher, MutualMatchEvent

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

dispatcher = EventDispatcher()
engine = DiscoveryEngine(dispatcher=dispatcher)


def log_mutual_match(event: MutualMatchEvent) -> None:
    logger.info(f"Mutual match formed: {event.requester_id} <-> {event.candidate_id}")


dispatcher.subscribe(log_mutual_match)


@asynccontextmanager
async def lifespan(app: FastAPI):
    dispatcher.start()
    yield
    dispatcher.stop()


app = FastAPI(
    title="Candidate Discovery",
    description="Scored, categorized and paginated candidate discovery with photo access policy",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# auto_error=False so a missing header goes through the same AuthError path as a bad token
security = HTTPBearer(auto_error=False)

# in-memory stand-ins for the persistence collaborator
profiles_db: Dict[str, Profile] = {}
preferences_db: Dict[str, Preference] = {}
interactions_db: Dict[Tuple[str, str], InteractionState] = {}

ERROR_STATUS = {
    InvalidFilterError: status.HTTP_400_BAD_REQUEST,
    MissingRequesterError: status.HTTP_404_NOT_FOUND,
    AuthError: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
}


class SystemStatus(BaseModel):
    status: str
    profiles_count: int
    preferences_count: int
    interactions_count: int
    events_dropped: int


class InteractionUpdate(BaseModel):
    """Interaction flags of the caller toward one candidate"""
    candidate_id: str
    state: InteractionState = Field(default_factory=InteractionState)


@app.exception_handler(DiscoveryError)
async def discovery_error_handler(request: Request, exc: DiscoveryError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    logger.info(f"{request.method} {request.url.path} -> {status_code} {exc.kind}")
    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    field = ".".join(str(part) for part in errors[0]["loc"]) if errors else None
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error_code": ERROR_REQUEST_MALFORMED,
            "message": "Malformed request parameters",
            "field": field,
            "details": {"errors": jsonable_encoder(errors)},
        },
    )


def current_subject(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    """Requester identity is the token subject"""
    token = credentials.credentials if credentials else None
    return validate_token(token).subject


def require_owner(subject: str, profile_id: str, field: str) -> None:
    """Members only write their own profile and preference"""
    if profile_id != subject:
        raise ForbiddenError(ERROR_AUTH_SUBJECT_MISMATCH,
                             message=f"Token subject {subject} cannot write records of {profile_id}",
                             field=field)


def build_pool(requester_id: str) -> List[PoolEntry]:
    """Every stored profile with the caller's interaction state toward it"""
    pool = []
    for profile in profiles_db.values():
        forward = interactions_db.get((requester_id, profile.id), InteractionState())
        backward = interactions_db.get((profile.id, requester_id))
        if backward is not None:
            # blocking and matching hold in either direction
            forward = forward.model_copy(update={
                "liked_by_candidate": backward.liked,
                "blocked": forward.blocked or backward.blocked,
                "matched": forward.matched or backward.matched,
                "matched_at": forward.matched_at or backward.matched_at,
            })
        pool.append(PoolEntry(profile=profile, interaction=forward))
    return pool


@app.get("/", response_model=Dict[str, str])
async def root():
    return {
        "message": "Candidate discovery service",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health", response_model=SystemStatus)
async def health_check():
    return SystemStatus(
        status="healthy",
        profiles_count=len(profiles_db),
        preferences_count=len(preferences_db),
        interactions_count=len(interactions_db),
        events_dropped=dispatcher.dropped,
    )


@app.post("/profiles", response_model=Dict[str, str])
async def add_profile(profile: Profile, subject: str = Depends(current_subject)):
    require_owner(subject, profile.id, "id")
    profiles_db[profile.id] = profile
    logger.info(f"Stored profile: {profile.id}")
    return {"message": f"Profile {profile.id} stored", "profile_id": profile.id}


@app.post("/preferences", response_model=Dict[str, str])
async def add_preferences(preference: Preference, subject: str = Depends(current_subject)):
    require_owner(subject, preference.profile_id, "profile_id")
    if preference.profile_id not in profiles_db:
        raise MissingRequesterError(ERROR_REQUESTER_PROFILE_MISSING,
                                    message=f"Profile {preference.profile_id} not found",
                                    field="profile_id")
    preferences_db[preference.profile_id] = preference
    logger.info(f"Stored preferences for profile: {preference.profile_id}")
    return {"message": f"Preferences for {preference.profile_id} stored"}


@app.post("/interactions", response_model=Dict[str, str])
async def record_interaction(update: InteractionUpdate, subject: str = Depends(current_subject)):
    interactions_db[(subject, update.candidate_id)] = update.state
    logger.info(f"Stored interaction: {subject} -> {update.candidate_id}")
    return {"message": "Interaction stored"}


def _discover(subject: str, criteria: FilterCriteria) -> MatchListResponse:
    start_time = time.time()
    response = engine.discover(profiles_db.get(subject), preferences_db.get(subject),
                               build_pool(subject), criteria)
    search_time = int((time.time() - start_time) * 1000)
    logger.info(f"Discovery for {subject}: {response.category} "
                f"{len(response.matches)}/{response.total_count} in {search_time}ms")
    return response


@app.get("/matches", response_model=MatchListResponse)
def search_matches(criteria: FilterCriteria = Depends(), subject: str = Depends(current_subject)):
    return _discover(subject, criteria)


@app.get("/matches/stats", response_model=MatchStatsResponse)
def match_stats(subject: str = Depends(current_subject)):
    return engine.stats(profiles_db.get(subject), preferences_db.get(subject), build_pool(subject))


@app.get("/matches/categories", response_model=List[MatchCategorySummary])
def match_categories(subject: str = Depends(current_subject)):
    return engine.categories(profiles_db.get(subject), preferences_db.get(subject), build_pool(subject))


@app.get("/matches/{category}", response_model=MatchListResponse)
def category_matches(category: str, criteria: FilterCriteria = Depends(),
                     subject: str = Depends(current_subject)):
    return _discover(subject, criteria.model_copy(update={"category": category}))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
