"""
FastAPI application exposing the election registry.

Every endpoint calls the in-process ElectionRegistry; the caller's identity
is read from the X-Caller-Address header.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from ..shared import (
    ElectionRegistry,
    RegistryError,
    Unauthorized,
    NotFound,
    AlreadyRegistered,
    NotRegistered,
    ElectionClosed,
    AlreadyVoted,
    InsufficientCandidates,
    ElectionStillActive,
)
from .config import settings
from .event_log import EventLog
from .models import (
    AddCandidateRequest,
    CandidateAddedResponse,
    CandidateResponse,
    CreateElectionRequest,
    ElectionCreatedResponse,
    ElectionResponse,
    ErrorResponse,
    EventResponse,
    HealthResponse,
    OwnerResponse,
    RegisterVoterRequest,
    RegisteredVotersResponse,
    VoteRequest,
    VoteResponse,
    VoterRegisteredResponse,
    VoterStatusResponse,
    WinnerResponse,
)
from .publisher import publisher

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Prometheus metrics
registry_operations = Counter(
    "registry_operations_total",
    "Total number of successful registry operations",
    ["operation"]
)
registry_errors = Counter(
    "registry_errors_total",
    "Total number of rejected registry operations",
    ["error_type"]
)
request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"]
)

ERROR_STATUS_CODES = {
    Unauthorized: status.HTTP_403_FORBIDDEN,
    NotRegistered: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    AlreadyRegistered: status.HTTP_409_CONFLICT,
    AlreadyVoted: status.HTTP_409_CONFLICT,
    ElectionClosed: status.HTTP_409_CONFLICT,
    ElectionStillActive: status.HTTP_409_CONFLICT,
    InsufficientCandidates: status.HTTP_400_BAD_REQUEST,
}

API_PREFIX = f"/api/{settings.API_VERSION}"

# Rate limiter
limiter = Limiter(key_func=get_remote_address)


def create_registry(owner: str = None, event_log: EventLog = None) -> ElectionRegistry:
    """Build a registry with the event log attached as its first listener."""
    registry = ElectionRegistry(owner=owner or settings.OWNER_ADDRESS)
    if event_log is not None:
        registry.add_listener(event_log)
    return registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting {settings.SERVICE_NAME} service...")

    try:
        if settings.RABBITMQ_ENABLED:
            await publisher.initialize()
            app.state.registry.add_listener(publisher.on_event)
        else:
            logger.info("RabbitMQ publishing disabled")

        logger.info(
            f"{settings.SERVICE_NAME} started successfully, owner={app.state.registry.owner}"
        )

    except Exception as e:
        logger.error(f"Failed to start {settings.SERVICE_NAME}: {e}")
        raise

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME} service...")

    try:
        if settings.RABBITMQ_ENABLED:
            app.state.registry.remove_listener(publisher.on_event)
            await publisher.close()
        logger.info(f"{settings.SERVICE_NAME} shut down successfully")

    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


# Create FastAPI app
app = FastAPI(
    title="Election Registry API",
    description="API for managing elections, candidates, voters and votes",
    version=settings.API_VERSION,
    lifespan=lifespan
)

app.state.event_log = EventLog(max_size=settings.EVENT_LOG_SIZE)
app.state.registry = create_registry(event_log=app.state.event_log)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    """Convert registry errors to HTTP responses."""
    error_type = type(exc).__name__
    registry_errors.labels(error_type=error_type).inc()

    response = ErrorResponse(
        error=error_type,
        message=exc.message,
        details=dict(request.path_params)
    )
    return JSONResponse(
        status_code=ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST),
        content=response.model_dump()
    )


@app.middleware("http")
async def prometheus_middleware(request: Request, call_next):
    """Middleware to track request duration."""
    started = time.perf_counter()
    response = await call_next(request)

    # Label by route template so ids do not create new series
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)

    request_duration.labels(
        method=request.method,
        endpoint=endpoint,
        status=response.status_code
    ).observe(time.perf_counter() - started)

    return response


def get_registry(request: Request) -> ElectionRegistry:
    return request.app.state.registry


def get_event_log(request: Request) -> EventLog:
    return request.app.state.event_log


def get_caller(
    x_caller_address: str = Header(..., description="Address of the caller")
) -> str:
    """Read the caller identity from the X-Caller-Address header."""
    caller = x_caller_address.strip()
    if not caller:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Caller-Address header cannot be empty"
        )
    return caller


@app.get(f"{API_PREFIX}/owner", response_model=OwnerResponse)
async def get_owner(registry: ElectionRegistry = Depends(get_registry)) -> OwnerResponse:
    """Get the registry owner address."""
    return OwnerResponse(owner=registry.owner)


@app.post(
    f"{API_PREFIX}/elections",
    response_model=ElectionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse, "description": "Caller is not the owner"}}
)
async def create_election(
    body: CreateElectionRequest,
    caller: str = Depends(get_caller),
    registry: ElectionRegistry = Depends(get_registry)
) -> ElectionCreatedResponse:
    """
    Create a new election.

    - **description**: Election description

    Returns the sequential election id.
    """
    election_id = registry.create_election(caller, body.description)
    registry_operations.labels(operation="create_election").inc()
    return ElectionCreatedResponse(election_id=election_id)


@app.get(f"{API_PREFIX}/elections", response_model=List[ElectionResponse])
async def list_elections(
    registry: ElectionRegistry = Depends(get_registry)
) -> List[ElectionResponse]:
    """Get all elections in id order."""
    return [ElectionResponse(**e.to_dict()) for e in registry.list_elections()]


@app.get(
    f"{API_PREFIX}/elections/{{election_id}}",
    response_model=ElectionResponse,
    responses={404: {"model": ErrorResponse, "description": "Election not found"}}
)
async def get_election(
    election_id: int,
    registry: ElectionRegistry = Depends(get_registry)
) -> ElectionResponse:
    """Get description, status and candidate count of an election."""
    return ElectionResponse(**registry.get_election(election_id).to_dict())


@app.post(
    f"{API_PREFIX}/elections/{{election_id}}/candidates",
    response_model=CandidateAddedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ErrorResponse, "description": "Caller is not the owner"},
        404: {"model": ErrorResponse, "description": "Election not found"},
        409: {"model": ErrorResponse, "description": "Election not active"}
    }
)
async def add_candidate(
    election_id: int,
    body: AddCandidateRequest,
    caller: str = Depends(get_caller),
    registry: ElectionRegistry = Depends(get_registry)
) -> CandidateAddedResponse:
    """
    Add a candidate to an election.

    - **name**: Candidate name

    Returns the candidate id within the election.
    """
    candidate_id = registry.add_candidate(caller, election_id, body.name)
    registry_operations.labels(operation="add_candidate").inc()
    return CandidateAddedResponse(election_id=election_id, candidate_id=candidate_id)


@app.get(
    f"{API_PREFIX}/elections/{{election_id}}/candidates/{{candidate_id}}",
    response_model=CandidateResponse,
    responses={404: {"model": ErrorResponse, "description": "Election or candidate not found"}}
)
async def get_candidate(
    election_id: int,
    candidate_id: int,
    registry: ElectionRegistry = Depends(get_registry)
) -> CandidateResponse:
    """Get name and vote count of a candidate."""
    return CandidateResponse(**registry.get_candidate(election_id, candidate_id).to_dict())


@app.post(
    f"{API_PREFIX}/elections/{{election_id}}/vote",
    response_model=VoteResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Caller is not registered"},
        404: {"model": ErrorResponse, "description": "Election or candidate not found"},
        409: {"model": ErrorResponse, "description": "Election not active or already voted"},
        429: {"description": "Rate limit exceeded"}
    }
)
@limiter.limit(settings.RATE_LIMIT)
async def submit_vote(
    request: Request,
    election_id: int,
    body: VoteRequest,
    caller: str = Depends(get_caller),
    registry: ElectionRegistry = Depends(get_registry)
) -> VoteResponse:
    """
    Cast the caller's vote in an election.

    - **candidate_id**: Chosen candidate

    Each registered voter may vote once per election.
    """
    registry.vote(caller, election_id, body.candidate_id)
    registry_operations.labels(operation="vote").inc()
    return VoteResponse(
        election_id=election_id,
        candidate_id=body.candidate_id,
        status="accepted",
        message="Vote recorded successfully"
    )


@app.get(
    f"{API_PREFIX}/elections/{{election_id}}/voters/{{address}}",
    response_model=VoterStatusResponse,
    responses={404: {"model": ErrorResponse, "description": "Election not found"}}
)
async def get_voter_status(
    election_id: int,
    address: str,
    registry: ElectionRegistry = Depends(get_registry)
) -> VoterStatusResponse:
    """Check whether an address is registered and has voted in an election."""
    has_voted = registry.has_voted(election_id, address)
    return VoterStatusResponse(
        election_id=election_id,
        address=address,
        registered=registry.is_registered(address),
        has_voted=has_voted
    )


@app.post(
    f"{API_PREFIX}/elections/{{election_id}}/end",
    response_model=ElectionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Not enough candidates"},
        403: {"model": ErrorResponse, "description": "Caller is not the owner"},
        404: {"model": ErrorResponse, "description": "Election not found"},
        409: {"model": ErrorResponse, "description": "Election already ended"}
    }
)
async def end_election(
    election_id: int,
    caller: str = Depends(get_caller),
    registry: ElectionRegistry = Depends(get_registry)
) -> ElectionResponse:
    """End an election; it must have at least two candidates."""
    registry.end_election(caller, election_id)
    registry_operations.labels(operation="end_election").inc()
    return ElectionResponse(**registry.get_election(election_id).to_dict())


@app.get(
    f"{API_PREFIX}/elections/{{election_id}}/winner",
    response_model=WinnerResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Election not found"},
        409: {"model": ErrorResponse, "description": "Election is still active"}
    }
)
async def get_winner(
    election_id: int,
    registry: ElectionRegistry = Depends(get_registry)
) -> WinnerResponse:
    """
    Get the winner of a closed election.

    On a tie the candidate with the highest id wins.
    """
    winner = registry.get_winner(election_id)
    return WinnerResponse(election_id=election_id, **winner.to_dict())


@app.post(
    f"{API_PREFIX}/voters",
    response_model=VoterRegisteredResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ErrorResponse, "description": "Caller is not the owner"},
        409: {"model": ErrorResponse, "description": "Voter is already registered"}
    }
)
async def register_voter(
    body: RegisterVoterRequest,
    caller: str = Depends(get_caller),
    registry: ElectionRegistry = Depends(get_registry)
) -> VoterRegisteredResponse:
    """
    Register a voter address.

    - **address**: Voter address
    """
    registry.register_voter(caller, body.address)
    registry_operations.labels(operation="register_voter").inc()
    return VoterRegisteredResponse(address=body.address)


@app.get(
    f"{API_PREFIX}/voters",
    response_model=RegisteredVotersResponse,
    responses={403: {"model": ErrorResponse, "description": "Caller is not the owner"}}
)
async def get_registered_voters(
    caller: str = Depends(get_caller),
    registry: ElectionRegistry = Depends(get_registry)
) -> RegisteredVotersResponse:
    """Get registered voter addresses in registration order."""
    voters = registry.get_registered_voters(caller)
    return RegisteredVotersResponse(voters=voters, total=len(voters))


@app.get(f"{API_PREFIX}/events", response_model=List[EventResponse])
async def get_events(
    limit: int = Query(default=100, ge=1, le=1000),
    event_log: EventLog = Depends(get_event_log)
) -> List[EventResponse]:
    """Get the most recent registry events, oldest first."""
    return [EventResponse(**event.to_dict()) for event in event_log.recent(limit)]


@app.get(
    f"{API_PREFIX}/health",
    response_model=HealthResponse,
    responses={
        503: {"model": HealthResponse, "description": "Service unhealthy"}
    }
)
async def health_check() -> HealthResponse:
    """
    Check health of the service and its dependencies.

    RabbitMQ is reported as "disabled" when event publishing is off.
    """
    # The registry is in-process; only the broker can be unreachable
    services = {"registry": "ok"}

    if settings.RABBITMQ_ENABLED:
        rabbitmq_healthy = await publisher.check_health()
        services["rabbitmq"] = "connected" if rabbitmq_healthy else "disconnected"
    else:
        services["rabbitmq"] = "disabled"

    all_healthy = all(
        state in ("ok", "connected", "disabled") for state in services.values()
    )

    overall_status = "healthy" if all_healthy else "unhealthy"
    status_code = status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE

    response = HealthResponse(
        status=overall_status,
        services=services,
        timestamp=datetime.utcnow()
    )

    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json")
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.API_VERSION,
        "status": "running",
        "endpoints": {
            "elections": f"{API_PREFIX}/elections",
            "voters": f"{API_PREFIX}/voters",
            "events": f"{API_PREFIX}/events",
            "owner": f"{API_PREFIX}/owner",
            "health": f"{API_PREFIX}/health",
            "metrics": "/metrics"
        }
    }


def run():
    """Serve the app with uvicorn.

    The app object is passed directly; an import string would load this
    module a second time and register the Prometheus metrics twice.
    """
    import uvicorn

    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level="info"
    )


if __name__ == "__main__":
    run()
