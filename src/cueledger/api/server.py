"""
CueLedger - FastAPI Server

HTTP surface for cashiers and admins.

Endpoints:
- GET  /health                 - Liveness and station counts
- GET  /stations               - List stations
- POST /stations               - Add a station (admin)
- PUT  /stations/{id}          - Edit a station (admin)
- DELETE /stations/{id}        - Remove a station (admin)
- GET  /sessions               - Active sessions with live cost
- POST /sessions               - Start a session
- POST /sessions/{id}/end      - End a session and collect payment
- GET  /credits                - List credits (status / search filters)
- POST /credits/{id}/pay       - Settle a credit
- GET  /payments               - Payment log (admin)
- GET  /reports                - Revenue report (admin)
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import structlog

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..billing.reports import RevenueReporter
from ..core.config import LedgerConfig
from ..core.credits import CreditLedger
from ..core.errors import InvalidArgument, LedgerError
from ..core.models import CreditStatus, PaymentStatus
from ..core.payments import PaymentLog
from ..core.sessions import SessionLedger
from ..core.stations import StationDirectory
from ..persistence import StoragePort, open_store

logger = structlog.get_logger()


# ============================================================================
# Pydantic Models
# ============================================================================

class StationCreateRequest(BaseModel):
    """Request to add a station."""
    name: str = Field(..., description="Display name, e.g. 'Billiard Table 1'")
    type: str = Field(..., description="Station type: billiard or ps4")
    hourly_rate: float = Field(..., description="Charge per hour of play")


class StationUpdateRequest(BaseModel):
    """Partial station update."""
    name: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = Field(None, description="available, occupied or maintenance")
    hourly_rate: Optional[float] = None


class SessionStartRequest(BaseModel):
    """Request to open a session."""
    station_id: str
    station_name: Optional[str] = None
    customer_name: Optional[str] = None


class SessionEndRequest(BaseModel):
    """Request to close a session."""
    mode: str = Field(..., description="Payment mode: cash, partial or credit")
    amount: float = Field(0, description="Charge for cash, amount paid now for partial")
    customer_name: Optional[str] = Field(None, description="Required for partial and credit")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    stations: Dict[str, int]
    active_sessions: int
    uptime_seconds: float


# ============================================================================
# Application State
# ============================================================================

class AppState:
    """Ledger services wired to one store."""

    def __init__(self, config: LedgerConfig, store: Optional[StoragePort] = None):
        self.config = config
        self.store = store or open_store(config.database_url)
        self.stations = StationDirectory(self.store)
        self.payments = PaymentLog(self.store)
        self.credits = CreditLedger(self.store, self.payments)
        self.sessions = SessionLedger(
            self.store,
            stations=self.stations,
            credits=self.credits,
            payment_log=self.payments,
        )
        self.reporter = RevenueReporter(self.store)
        self.start_time = datetime.now(timezone.utc)


# ============================================================================
# Dependencies
# ============================================================================

def get_state(request: Request) -> AppState:
    """Get application state."""
    state = getattr(request.app.state, "ledger", None)
    if state is None:
        raise HTTPException(status_code=503, detail="Application not initialized")
    return state


def verify_api_key(
    x_api_key: str = Header(..., alias="X-API-Key"),
    state: AppState = Depends(get_state),
) -> str:
    """Resolve the API key to a role."""
    role = state.config.role_for_key(x_api_key)
    if role is None:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return role


def require_admin(role: str = Depends(verify_api_key)) -> str:
    if role != "admin":
        raise HTTPException(status_code=403, detail="Admin role required")
    return role


def _parse_enum_query(enum_cls, value: Optional[str], name: str):
    if value is None:
        return None
    try:
        return enum_cls(value.lower())
    except ValueError:
        raise InvalidArgument(f"Invalid {name}: {value}", {"field": name})


# ============================================================================
# Endpoints
# ============================================================================

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(state: AppState = Depends(get_state)):
    """Health check endpoint."""
    active = state.sessions.list_sessions(PaymentStatus.PENDING)
    uptime = (datetime.now(timezone.utc) - state.start_time).total_seconds()
    return HealthResponse(
        status="healthy",
        version=__version__,
        stations=state.stations.status_counts(s.station_id for s in active),
        active_sessions=len(active),
        uptime_seconds=uptime,
    )


@router.get("/stations", tags=["Stations"])
async def list_stations(
    state: AppState = Depends(get_state),
    role: str = Depends(verify_api_key),
) -> List[Dict[str, Any]]:
    return [s.to_dict() for s in state.stations.list_stations()]


@router.post("/stations", status_code=201, tags=["Stations"])
async def add_station(
    request: StationCreateRequest,
    state: AppState = Depends(get_state),
    role: str = Depends(require_admin),
):
    station = state.stations.add_station(request.name, request.type, request.hourly_rate)
    return station.to_dict()


@router.put("/stations/{station_id}", tags=["Stations"])
async def update_station(
    station_id: str,
    request: StationUpdateRequest,
    state: AppState = Depends(get_state),
    role: str = Depends(require_admin),
):
    station = state.stations.update_station(station_id, **request.model_dump(exclude_unset=True))
    return station.to_dict()


@router.delete("/stations/{station_id}", tags=["Stations"])
async def delete_station(
    station_id: str,
    state: AppState = Depends(get_state),
    role: str = Depends(require_admin),
):
    state.stations.delete_station(station_id)
    return {"success": True}


@router.get("/sessions", tags=["Sessions"])
async def list_active_sessions(
    state: AppState = Depends(get_state),
    role: str = Depends(verify_api_key),
):
    """Active sessions enriched with hourly rate and the charge so far."""
    return [a.to_dict() for a in state.sessions.active_sessions()]


@router.post("/sessions", status_code=201, tags=["Sessions"])
async def start_session(
    request: SessionStartRequest,
    state: AppState = Depends(get_state),
    role: str = Depends(verify_api_key),
):
    session = state.sessions.start_session(
        request.station_id,
        station_name=request.station_name,
        customer_name=request.customer_name,
    )
    return session.to_dict()


@router.post("/sessions/{session_id}/end", tags=["Sessions"])
async def end_session(
    session_id: str,
    request: SessionEndRequest,
    state: AppState = Depends(get_state),
    role: str = Depends(verify_api_key),
):
    """
    End a session.

    cash charges exactly `amount`; partial charges the time-based cost and
    collects `amount` now; credit collects nothing. Any remainder becomes a
    credit in the customer's name.
    """
    result = state.sessions.end_session(
        session_id,
        request.mode,
        request.amount,
        customer_name=request.customer_name,
    )
    return result.to_dict()


@router.get("/credits", tags=["Credits"])
async def list_credits(
    status: Optional[str] = None,
    search: Optional[str] = None,
    state: AppState = Depends(get_state),
    role: str = Depends(verify_api_key),
):
    credit_status = _parse_enum_query(CreditStatus, status, "status")
    credits = state.credits.list_credits(status=credit_status, search=search)
    summary = state.credits.outstanding_summary(search=search)
    return {
        "credits": [c.to_dict() for c in credits],
        "total_outstanding": summary.total_outstanding,
        "outstanding_count": summary.count,
    }


@router.post("/credits/{credit_id}/pay", tags=["Credits"])
async def settle_credit(
    credit_id: str,
    state: AppState = Depends(get_state),
    role: str = Depends(verify_api_key),
):
    credit = state.credits.settle_credit(credit_id)
    return credit.to_dict()


@router.get("/payments", tags=["Reports"])
async def list_payments(
    state: AppState = Depends(get_state),
    role: str = Depends(require_admin),
):
    payments = state.payments.list_payments()
    return {
        "total": len(payments),
        "payments": [p.to_dict() for p in payments],
    }


@router.get("/reports", tags=["Reports"])
async def revenue_report(
    period: str = "daily",
    state: AppState = Depends(get_state),
    role: str = Depends(require_admin),
):
    return state.reporter.revenue(period).to_dict()


# ============================================================================
# Application Factory
# ============================================================================

def create_app(
    config: Optional[LedgerConfig] = None,
    store: Optional[StoragePort] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or LedgerConfig.from_env()

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        """Application lifespan handler."""
        logger.info("cueledger_starting", version=__version__, database_url=config.database_url)
        application.state.ledger = AppState(config, store)
        yield
        logger.info("cueledger_stopping")

    application = FastAPI(
        title="CueLedger",
        description="Session billing and credit ledger for a billiard and console shop.",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        logger.info("ledger_error", path=request.url.path, error=exc.code, message=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    application.include_router(router)
    return application


app = create_app()


# ============================================================================
# Run
# ============================================================================

def run():
    """Run the server."""
    import uvicorn
    config = LedgerConfig.from_env()
    uvicorn.run(
        "cueledger.api.server:app",
        host="0.0.0.0",
        port=config.port,
        reload=config.debug,
    )


if __name__ == "__main__":
    run()
