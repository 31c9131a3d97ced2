from __future__ import annotations

from collections.abc import Iterator
from typing import Annotated

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from loguru import logger

from oracle.service import HttpOutcomeOracle

from . import schemas
from .core.config import settings
from .db import get_db, init_db
from .errors import (
    InsufficientCreditsError,
    InvalidOptionError,
    InvalidPredictionError,
    InvalidProfileError,
    InvalidStakeError,
    PredictionAlreadyResolvedError,
    PredictionClosedError,
    PredictionNotFoundError,
    PredictPoolError,
    ProfileExistsError,
    ProfileNotFoundError,
)
from .services.generator import PredictionGenerator
from .services.prediction_service import PredictionQuery, PredictionService
from .services.resolution_engine import ResolutionEngine
from .services.settlement_service import SettlementService
from .services.voting_service import VotingService

app = FastAPI(title="PredictPool API", version="0.1.0", debug=settings.debug)

_ERROR_STATUS: dict[type[PredictPoolError], int] = {
    PredictionNotFoundError: 404,
    ProfileNotFoundError: 404,
    PredictionAlreadyResolvedError: 409,
    ProfileExistsError: 409,
    InvalidPredictionError: 400,
    InvalidProfileError: 400,
    InvalidOptionError: 400,
    InvalidStakeError: 400,
    PredictionClosedError: 400,
    InsufficientCreditsError: 400,
}


@app.on_event("startup")
def on_startup() -> None:
    """Initialize database connections when the API boots."""

    init_db()


@app.exception_handler(PredictPoolError)
def handle_domain_error(request: Request, exc: PredictPoolError) -> JSONResponse:
    status_code = _ERROR_STATUS.get(type(exc), 400)
    logger.info("{} {} rejected with {}: {}", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


def _prediction_query(
    *,
    status: Annotated[
        str | None,
        Query(description="Prediction status filter", pattern="^(active|locked|resolved)$"),
    ] = "active",
    category: Annotated[str | None, Query(description="Category filter")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> PredictionQuery:
    return PredictionQuery(status=status, category=category, limit=limit, offset=offset)


def _prediction_service(db=Depends(get_db)) -> PredictionService:
    return PredictionService(db)


def _voting_service(db=Depends(get_db)) -> VotingService:
    return VotingService(db)


def _settlement_service(db=Depends(get_db)) -> SettlementService:
    return SettlementService(db)


def _outcome_oracle() -> Iterator[HttpOutcomeOracle]:
    """Provide provider clients for a single request and close them afterwards."""

    with HttpOutcomeOracle(settings) as oracle:
        yield oracle


def _resolution_engine(oracle=Depends(_outcome_oracle)) -> ResolutionEngine:
    return ResolutionEngine(oracle)


def _prediction_generator(oracle=Depends(_outcome_oracle)) -> PredictionGenerator:
    return PredictionGenerator(oracle, settings)


# ----------------------------------------------------------------------
# Predictions


@app.get("/predictions", response_model=schemas.PredictionList, tags=["predictions"])
def list_predictions(
    *,
    query: PredictionQuery = Depends(_prediction_query),
    service: PredictionService = Depends(_prediction_service),
):
    """List predictions ordered by trending score, then by deadline."""

    result = service.list_predictions(query)
    return schemas.PredictionList(total=result.total, items=list(result.predictions))


@app.get("/predictions/{prediction_id}", response_model=schemas.Prediction, tags=["predictions"])
def get_prediction(prediction_id: str, service: PredictionService = Depends(_prediction_service)):
    return service.get_prediction(prediction_id)


@app.post(
    "/predictions",
    response_model=schemas.Prediction,
    status_code=201,
    tags=["predictions"],
)
def create_prediction(
    payload: schemas.PredictionCreate,
    service: PredictionService = Depends(_prediction_service),
):
    return service.create_prediction(payload)


@app.post(
    "/predictions/{prediction_id}/vote",
    response_model=schemas.Vote,
    status_code=201,
    tags=["votes"],
)
def place_vote(
    prediction_id: str,
    payload: schemas.VoteCreate,
    service: VotingService = Depends(_voting_service),
):
    """Stake credits on one option of an active prediction."""

    vote = service.place_vote(
        prediction_id,
        user_id=payload.user_id,
        selected_option=payload.selected_option,
        credits_staked=payload.credits_staked,
    )
    return schemas.Vote.model_validate(vote)


@app.get(
    "/predictions/{prediction_id}/votes",
    response_model=schemas.PredictionVotes,
    tags=["votes"],
)
def get_prediction_votes(
    prediction_id: str,
    service: PredictionService = Depends(_prediction_service),
):
    """Return every vote on a prediction with the share of votes per option."""

    return service.get_prediction_votes(prediction_id)


@app.get("/users/{user_id}/votes", response_model=list[schemas.UserVote], tags=["votes"])
def get_user_votes(user_id: str, service: PredictionService = Depends(_prediction_service)):
    return service.get_user_votes(user_id)


# ----------------------------------------------------------------------
# Profiles


@app.get("/leaderboard", response_model=list[schemas.Profile], tags=["profiles"])
def leaderboard(
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
    service: PredictionService = Depends(_prediction_service),
):
    return service.leaderboard(limit)


@app.post("/profiles", response_model=schemas.Profile, status_code=201, tags=["profiles"])
def create_profile(
    payload: schemas.ProfileCreate,
    service: PredictionService = Depends(_prediction_service),
):
    return service.create_profile(payload.username, payload.credits)


# ----------------------------------------------------------------------
# Admin


@app.post(
    "/admin/generate-predictions",
    response_model=schemas.GenerationReport,
    tags=["admin"],
)
def generate_predictions(
    include_stocks: Annotated[bool, Query(description="Also draft stock predictions")] = True,
    generator: PredictionGenerator = Depends(_prediction_generator),
    service: PredictionService = Depends(_prediction_service),
):
    drafts = generator.generate(include_stocks=include_stocks)
    created = service.create_predictions(drafts) if drafts else []
    return schemas.GenerationReport(created=len(created), predictions=created)


@app.post(
    "/admin/predictions/{prediction_id}/resolve",
    response_model=schemas.SettlementReport,
    tags=["admin"],
)
def resolve_prediction(
    prediction_id: str,
    payload: schemas.ResolveRequest,
    service: SettlementService = Depends(_settlement_service),
):
    """Settle a prediction with an operator-chosen winner, including locked ones."""

    result = service.distribute_winnings(prediction_id, payload.winning_option)
    report = result.to_dict()
    report["winner"] = report.pop("winning_option")
    return schemas.SettlementReport(**report)


@app.post("/admin/resolution-scan", response_model=schemas.ResolutionScanReport, tags=["admin"])
def run_resolution_scan(engine: ResolutionEngine = Depends(_resolution_engine)):
    """Run one settlement scan synchronously and report what happened."""

    summary = engine.check_and_resolve()
    return schemas.ResolutionScanReport(**summary.to_dict())
