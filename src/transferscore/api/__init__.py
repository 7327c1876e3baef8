"""REST API for transfer eligibility scoring and the surrounding workflows."""

from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request

from transferscore.api.schemas import (
    ConsularReportVerification,
    EligibilityResponse,
    EmbassyNotificationRequest,
    EmbassyNotificationResponse,
    FederationRequestCreate,
    FederationRequestResponse,
    FederationRequestSummary,
    LetterReviewRequest,
    PaymentConfirmation,
    PlayerDetailResponse,
    RecalculateRequest,
    RejectionRequest,
    RequestActivityResponse,
    ScoreRequest,
    TokenBalanceResponse,
    TokenCostResponse,
    TokenCreditRequest,
    TokenSpendRequest,
    TokenTransactionResponse,
    TransitionRequest,
    VideoVerification,
)
from transferscore.config import Settings, load_settings
from transferscore.models import (
    InternationalRecord,
    InvitationLetter,
    PlayerMetrics,
    PlayerProfile,
    TransferEligibilityAssessment,
    TransferEligibilityResult,
    Video,
    VideoInsight,
)
from transferscore.persistence import EligibilityStore, FederationRequestRecord
from transferscore.reports import ConsularReport, build_consular_report, is_expired
from transferscore.scoring import calculate_transfer_eligibility, collect_scoring_input
from transferscore.tokens import InsufficientTokens, costs_for_role, get_action
from transferscore.workflow import (
    FEDERATION_FEE,
    FEDERATION_SERVICE_CHARGE,
    InvalidTransition,
    LetterStatus,
    RequestStatus,
    advance_federation_request,
    advance_invitation_letter,
    confirm_payment,
    ensure_deletable,
    new_request_number,
)


logger = logging.getLogger("uvicorn.error")
logger.setLevel(logging.INFO)


def _insufficient(exc: InsufficientTokens) -> HTTPException:
    return HTTPException(
        status_code=402,
        detail={"message": str(exc), "required": exc.required, "available": exc.available},
    )


def _assessment_to_response(assessment: TransferEligibilityAssessment) -> EligibilityResponse:
    return EligibilityResponse(
        player_id=assessment.player_id,
        league_band_applied=assessment.league_band_applied,
        calculated_at=assessment.calculated_at,
        valid_until=assessment.valid_until,
        result=assessment.result,
    )


def create_app(db_path: Path | str | None = None, *, settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="transferscore")
    resolved_path = db_path or settings.db_path or Path(__file__).resolve().parent.parent / "transferscore.sqlite"
    store = EligibilityStore(resolved_path)
    app.state.store = store
    app.state.settings = settings

    def _player_or_404(player_id: str) -> PlayerProfile:
        player = store.get_player(player_id)
        if player is None:
            raise HTTPException(status_code=404, detail="Player not found")
        return player

    def _request_or_404(request_id: str) -> FederationRequestRecord:
        record = store.get_federation_request(request_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Request not found")
        return record

    def _letter_or_404(letter_id: str) -> tuple[str, InvitationLetter]:
        found = store.get_invitation_letter(letter_id)
        if found is None:
            raise HTTPException(status_code=404, detail="Invitation letter not found")
        return found

    def _request_response(record: FederationRequestRecord) -> FederationRequestResponse:
        activities = [
            RequestActivityResponse(**asdict(activity))
            for activity in store.list_request_activities(record.request_id)
        ]
        return FederationRequestResponse(**asdict(record), activities=activities)

    def _score_and_store(player_id: str, league_band: int | None = None) -> TransferEligibilityAssessment:
        player = _player_or_404(player_id)
        data = collect_scoring_input(
            player,
            metrics=store.list_metrics(player_id),
            videos=store.list_videos(player_id),
            video_insights=store.list_video_insights(player_id),
            international_records=store.list_international_records(player_id),
            invitation_letters=store.list_invitation_letters(player_id),
            league_band=league_band,
            default_band=settings.default_league_band,
        )
        result = calculate_transfer_eligibility(
            data,
            estimate_international_minutes=settings.estimate_international_minutes,
        )
        assessment = store.save_assessment(
            player_id,
            result,
            league_band=data.league_band,
            validity_days=settings.assessment_validity_days,
        )
        logger.info(
            "Scored player %s at band %d: overall %s",
            player_id,
            data.league_band,
            result.overall_status.value,
        )
        return assessment

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/eligibility/score", response_model=TransferEligibilityResult)
    async def score(payload: ScoreRequest):
        data = collect_scoring_input(
            payload.player,
            metrics=payload.metrics,
            videos=payload.videos,
            video_insights=payload.video_insights,
            international_records=payload.international_records,
            invitation_letters=payload.invitation_letters,
            league_band=payload.league_band,
            default_band=settings.default_league_band,
        )
        return calculate_transfer_eligibility(
            data,
            estimate_international_minutes=settings.estimate_international_minutes,
        )

    # Players

    @app.post("/players", response_model=PlayerProfile, status_code=201)
    async def create_player(profile: PlayerProfile):
        return store.save_player(profile)

    @app.get("/players/{player_id}", response_model=PlayerDetailResponse)
    async def get_player(player_id: str):
        player = _player_or_404(player_id)
        return PlayerDetailResponse(
            player=player,
            metrics=store.list_metrics(player_id),
            videos=store.list_videos(player_id),
            international_records=store.list_international_records(player_id),
            invitation_letters=store.list_invitation_letters(player_id),
        )

    @app.post("/players/{player_id}/metrics", response_model=PlayerMetrics, status_code=201)
    async def add_metrics(player_id: str, metrics: PlayerMetrics):
        _player_or_404(player_id)
        return store.add_metrics(player_id, metrics)

    @app.post("/players/{player_id}/videos", response_model=Video, status_code=201)
    async def add_video(player_id: str, video: Video):
        _player_or_404(player_id)
        return store.add_video(player_id, video)

    @app.post("/players/{player_id}/video-insights", response_model=VideoInsight, status_code=201)
    async def add_video_insight(player_id: str, insight: VideoInsight):
        _player_or_404(player_id)
        return store.add_video_insight(player_id, insight)

    @app.post(
        "/players/{player_id}/international-records",
        response_model=InternationalRecord,
        status_code=201,
    )
    async def add_international_record(player_id: str, record: InternationalRecord):
        _player_or_404(player_id)
        return store.add_international_record(player_id, record)

    @app.post(
        "/players/{player_id}/invitation-letters",
        response_model=InvitationLetter,
        status_code=201,
    )
    async def add_invitation_letter(player_id: str, letter: InvitationLetter):
        _player_or_404(player_id)
        if store.get_invitation_letter(letter.letter_id) is not None:
            raise HTTPException(status_code=400, detail="Invitation letter already exists")
        fresh = letter.model_copy(
            update={
                "status": LetterStatus.PENDING.value,
                "embassy_notification_status": "not_notified",
                "consular_report_generated": False,
                "consular_report_id": None,
            }
        )
        return store.save_invitation_letter(player_id, fresh)

    # Transfer eligibility

    @app.get("/players/{player_id}/transfer-eligibility", response_model=EligibilityResponse)
    async def transfer_eligibility(player_id: str):
        return _assessment_to_response(_score_and_store(player_id))

    @app.post(
        "/players/{player_id}/transfer-eligibility/recalculate",
        response_model=EligibilityResponse,
    )
    async def recalculate_transfer_eligibility(player_id: str, payload: RecalculateRequest | None = None):
        league_band = payload.league_band if payload is not None else None
        return _assessment_to_response(_score_and_store(player_id, league_band))

    @app.get(
        "/players/{player_id}/transfer-eligibility/assessment",
        response_model=EligibilityResponse,
    )
    async def stored_assessment(player_id: str):
        assessment = store.get_assessment(player_id)
        if assessment is None:
            raise HTTPException(status_code=404, detail="No assessment found for player")
        return _assessment_to_response(assessment)

    # Federation letter requests

    @app.post("/federation-letter-requests", response_model=FederationRequestResponse, status_code=201)
    async def create_federation_request(payload: FederationRequestCreate):
        _player_or_404(payload.player_id)
        details = payload.model_dump(include={"purpose", "destination_country", "target_club", "notes"})
        record = store.create_federation_request(
            request_number=new_request_number(),
            player_id=payload.player_id,
            team_id=payload.team_id,
            fee_amount=FEDERATION_FEE,
            service_charge=FEDERATION_SERVICE_CHARGE,
            details=details,
            actor_id=payload.actor_id,
        )
        logger.info("Created federation letter request %s for player %s", record.request_number, record.player_id)
        return _request_response(record)

    @app.get("/federation-letter-requests", response_model=list[FederationRequestResponse])
    async def list_federation_requests(status: str | None = None, limit: int = 50):
        if status is not None:
            try:
                status = RequestStatus(status).value
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=f"Unknown status {status!r}") from exc
        return [_request_response(record) for record in store.list_federation_requests(status=status, limit=limit)]

    @app.get("/federation-letter-requests/summary", response_model=FederationRequestSummary)
    async def federation_request_summary():
        counts = store.count_federation_requests_by_status()
        return FederationRequestSummary(
            total=sum(counts.values()),
            **{status.value: counts.get(status.value, 0) for status in RequestStatus},
        )

    @app.get("/federation-letter-requests/{request_id}", response_model=FederationRequestResponse)
    async def get_federation_request(request_id: str):
        return _request_response(_request_or_404(request_id))

    @app.post(
        "/federation-letter-requests/{request_id}/confirm-payment",
        response_model=FederationRequestResponse,
    )
    async def confirm_federation_payment(request_id: str, payload: PaymentConfirmation):
        record = _request_or_404(request_id)
        try:
            payment_status = confirm_payment(record.payment_status)
        except InvalidTransition as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        try:
            updated = store.update_federation_request(
                request_id,
                payment_status=payment_status.value,
                payment_id=payload.payment_id,
                actor_id=payload.actor_id,
                expected_payment_status=record.payment_status,
            )
        except InvalidTransition as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _request_response(updated)

    def _transition(
        request_id: str,
        target: RequestStatus,
        *,
        actor_id: str | None = None,
        rejection_reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> FederationRequestResponse:
        record = _request_or_404(request_id)
        try:
            new_status = advance_federation_request(
                record.status,
                target,
                payment_status=record.payment_status,
            )
            updated = store.update_federation_request(
                request_id,
                status=new_status.value,
                rejection_reason=rejection_reason,
                details=details,
                actor_id=actor_id,
                expected_status=record.status,
                expected_payment_status=record.payment_status,
            )
        except InvalidTransition as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _request_response(updated)

    @app.post("/federation-letter-requests/{request_id}/submit", response_model=FederationRequestResponse)
    async def submit_federation_request(request_id: str, payload: TransitionRequest | None = None):
        actor_id = payload.actor_id if payload is not None else None
        return _transition(request_id, RequestStatus.SUBMITTED, actor_id=actor_id)

    @app.post("/federation-letter-requests/{request_id}/accept", response_model=FederationRequestResponse)
    async def accept_federation_request(request_id: str, payload: TransitionRequest | None = None):
        actor_id = payload.actor_id if payload is not None else None
        return _transition(request_id, RequestStatus.PROCESSING, actor_id=actor_id)

    @app.post("/federation-letter-requests/{request_id}/issue", response_model=FederationRequestResponse)
    async def issue_federation_request(request_id: str, payload: TransitionRequest | None = None):
        payload = payload or TransitionRequest()
        details = None
        if payload.issued_document_name:
            details = {"issued_document_name": payload.issued_document_name}
        return _transition(request_id, RequestStatus.ISSUED, actor_id=payload.actor_id, details=details)

    @app.post("/federation-letter-requests/{request_id}/reject", response_model=FederationRequestResponse)
    async def reject_federation_request(request_id: str, payload: RejectionRequest):
        return _transition(
            request_id,
            RequestStatus.REJECTED,
            actor_id=payload.actor_id,
            rejection_reason=payload.rejection_reason,
        )

    @app.delete("/federation-letter-requests/{request_id}")
    async def delete_federation_request(request_id: str):
        record = _request_or_404(request_id)
        try:
            ensure_deletable(record.status)
        except InvalidTransition as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        store.delete_federation_request(request_id)
        logger.info("Deleted federation letter request %s", record.request_number)
        return {"request_id": request_id, "deleted": True}

    # Invitation letters

    def _review_letter(letter_id: str, target: LetterStatus, review: LetterReviewRequest | None) -> InvitationLetter:
        review = review or LetterReviewRequest()
        player_id, letter = _letter_or_404(letter_id)
        try:
            new_status = advance_invitation_letter(letter.status, target)
        except InvalidTransition as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        logger.info(
            "Invitation letter %s %s by %s%s",
            letter_id,
            new_status.value,
            review.reviewer_id or "unknown reviewer",
            f": {review.reason}" if review.reason else "",
        )
        return store.save_invitation_letter(player_id, letter.model_copy(update={"status": new_status.value}))

    @app.post("/invitation-letters/{letter_id}/verify", response_model=InvitationLetter)
    async def verify_invitation_letter(letter_id: str, payload: LetterReviewRequest | None = None):
        return _review_letter(letter_id, LetterStatus.VERIFIED, payload)

    @app.post("/invitation-letters/{letter_id}/reject", response_model=InvitationLetter)
    async def reject_invitation_letter(letter_id: str, payload: LetterReviewRequest | None = None):
        return _review_letter(letter_id, LetterStatus.REJECTED, payload)

    @app.post("/invitation-letters/{letter_id}/notify-embassy", response_model=EmbassyNotificationResponse)
    async def notify_embassy(letter_id: str, payload: EmbassyNotificationRequest):
        _, letter = _letter_or_404(letter_id)
        try:
            action = get_action(payload.role, "embassy_notification")
        except KeyError as exc:
            raise HTTPException(status_code=400, detail=f"Role {payload.role!r} cannot notify embassies") from exc
        try:
            updated, transaction = store.notify_embassy(
                letter_id,
                user_id=payload.user_id,
                amount=action.cost,
                action=action.key,
                description=f"Embassy notification for invitation to {letter.target_club_name}",
            )
        except InvalidTransition as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except InsufficientTokens as exc:
            raise _insufficient(exc) from exc
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Invitation letter not found") from exc
        return EmbassyNotificationResponse(
            letter=updated,
            tokens_spent=transaction.amount,
            balance_after=transaction.balance_after,
        )

    # Consular reports

    @app.post("/invitation-letters/{letter_id}/consular-report", response_model=ConsularReport, status_code=201)
    async def generate_consular_report(letter_id: str):
        player_id, letter = _letter_or_404(letter_id)
        player = _player_or_404(player_id)
        assessment = store.get_assessment(player_id)
        if assessment is None:
            assessment = _score_and_store(player_id)
        data = collect_scoring_input(
            player,
            metrics=store.list_metrics(player_id),
            videos=store.list_videos(player_id),
            league_band=assessment.league_band_applied,
        )
        report = build_consular_report(
            player,
            letter,
            result=assessment.result,
            league_band_applied=assessment.league_band_applied,
            videos=data.videos,
            metrics=data.metrics,
        )
        return store.save_consular_report(report)

    @app.get("/consular-reports/{report_id}", response_model=ConsularReport)
    async def get_consular_report(report_id: str):
        report = store.get_consular_report(report_id)
        if report is None:
            raise HTTPException(status_code=404, detail="Consular report not found")
        return report

    @app.get("/players/{player_id}/consular-reports", response_model=list[ConsularReport])
    async def list_consular_reports(player_id: str):
        _player_or_404(player_id)
        return store.list_consular_reports(player_id)

    @app.get("/verify/consular-report/{code}", response_model=ConsularReportVerification)
    async def verify_consular_report(code: str, request: Request):
        report = store.get_consular_report_by_code(code)
        if report is None:
            raise HTTPException(status_code=404, detail="Invalid verification code")
        if is_expired(report):
            logger.info("Expired consular report %s presented for verification", code)
            return ConsularReportVerification(
                valid=False,
                verification_code=code,
                valid_until=report.valid_until,
                message="Report has expired",
            )
        client = request.client.host if request.client is not None else None
        store.record_report_access(report.report_id, client=client)
        return ConsularReportVerification(
            valid=True,
            verification_code=code,
            valid_until=report.valid_until,
            report=report,
        )

    @app.get("/verify/video/{video_id}", response_model=VideoVerification)
    async def verify_video(video_id: str, code: str):
        report = store.get_consular_report_by_code(code)
        link = None
        if report is not None:
            link = next((item for item in report.video_links if item.video_id == video_id), None)
        if report is None or link is None:
            raise HTTPException(status_code=404, detail="Video not covered by this verification code")
        return VideoVerification(
            valid=not is_expired(report),
            video_id=video_id,
            title=link.title,
            player_id=report.player_id,
            verification_code=code,
            valid_until=report.valid_until,
        )

    # Tokens

    @app.get("/tokens/costs/{role}", response_model=list[TokenCostResponse])
    async def token_costs(role: str):
        return [
            TokenCostResponse(action=action.key, cost=action.cost, description=action.description)
            for action in costs_for_role(role).values()
        ]

    @app.get("/tokens/{user_id}/balance", response_model=TokenBalanceResponse)
    async def token_balance(user_id: str):
        return TokenBalanceResponse(**asdict(store.ensure_token_balance(user_id)))

    @app.post("/tokens/{user_id}/spend", response_model=TokenTransactionResponse)
    async def spend_tokens(user_id: str, payload: TokenSpendRequest):
        try:
            action = get_action(payload.role, payload.action)
        except KeyError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid action {payload.action!r}") from exc
        try:
            transaction = store.spend_tokens(
                user_id,
                amount=action.cost,
                action=action.key,
                description=action.description,
                player_id=payload.player_id,
            )
        except InsufficientTokens as exc:
            raise _insufficient(exc) from exc
        return TokenTransactionResponse(**asdict(transaction))

    @app.post("/tokens/{user_id}/credit", response_model=TokenTransactionResponse)
    async def credit_tokens(user_id: str, payload: TokenCreditRequest):
        transaction = store.credit_tokens(
            user_id,
            amount=payload.amount,
            description=payload.description or f"Purchased {payload.amount} tokens",
        )
        return TokenTransactionResponse(**asdict(transaction))

    @app.get("/tokens/{user_id}/transactions", response_model=list[TokenTransactionResponse])
    async def token_transactions(user_id: str, limit: int = 50):
        return [TokenTransactionResponse(**asdict(tx)) for tx in store.list_token_transactions(user_id, limit=limit)]

    return app


__all__ = ["create_app"]
