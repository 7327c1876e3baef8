"""Persistence layer for player records, assessments, requests and token ledgers."""

from __future__ import annotations

import json
import logging
import sqlite3
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Type, TypeVar
from uuid import uuid4

from pydantic import BaseModel

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
from transferscore.reports import ConsularReport
from transferscore.tokens import WELCOME_BONUS, InsufficientTokens
from transferscore.workflow import InvalidTransition, mark_embassy_notified


logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


@dataclass
class FederationRequestRecord:
    request_id: str
    request_number: str
    player_id: str
    team_id: str
    status: str
    payment_status: str
    payment_id: Optional[str]
    fee_amount: float
    service_charge: float
    total_amount: float
    details: dict
    rejection_reason: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass
class RequestActivity:
    activity_id: str
    request_id: str
    previous_status: Optional[str]
    new_status: str
    actor_id: Optional[str]
    description: str
    created_at: datetime


@dataclass
class TokenBalance:
    user_id: str
    balance: int
    lifetime_purchased: int
    lifetime_spent: int
    created_at: datetime
    updated_at: datetime


@dataclass
class TokenTransaction:
    transaction_id: str
    user_id: str
    amount: int
    type: str
    action: str
    description: Optional[str]
    player_id: Optional[str]
    balance_after: int
    created_at: datetime


@dataclass
class ReportAccess:
    access_id: str
    report_id: str
    client: Optional[str]
    accessed_at: datetime


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EligibilityStore:
    """SQLite-backed store for the records the scoring engine reads and writes."""

    def __init__(self, db_path: Path | str):
        self._use_uri = isinstance(db_path, str) and db_path.startswith("file:")
        self.db_path: Path | str = db_path if self._use_uri else Path(db_path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            try:
                conn = sqlite3.connect(self.db_path)
            except sqlite3.OperationalError:
                fallback_dir = Path(tempfile.gettempdir()) / "transferscore-runtime"
                fallback_dir.mkdir(parents=True, exist_ok=True)
                fallback = fallback_dir / "transferscore.sqlite"
                logger.warning("Cannot open %s; falling back to %s", self.db_path, fallback)
                conn = sqlite3.connect(fallback)
                self.db_path = fallback
                self._create_schema(conn)
        else:
            conn = sqlite3.connect(self.db_path, uri=self._use_uri)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            self._create_schema(conn)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS players (
                id TEXT PRIMARY KEY,
                profile_json TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS player_records (
                id TEXT PRIMARY KEY,
                player_id TEXT NOT NULL,
                kind TEXT NOT NULL,
                payload_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS ix_player_records_kind
                ON player_records (player_id, kind);
            CREATE TABLE IF NOT EXISTS invitation_letters (
                id TEXT PRIMARY KEY,
                player_id TEXT NOT NULL,
                status TEXT NOT NULL,
                embassy_notification_status TEXT NOT NULL,
                payload_json TEXT NOT NULL,
                uploaded_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS assessments (
                id TEXT PRIMARY KEY,
                player_id TEXT NOT NULL UNIQUE,
                league_band INTEGER NOT NULL,
                result_json TEXT NOT NULL,
                calculated_at TEXT NOT NULL,
                valid_until TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS federation_requests (
                id TEXT PRIMARY KEY,
                request_number TEXT NOT NULL,
                player_id TEXT NOT NULL,
                team_id TEXT NOT NULL,
                status TEXT NOT NULL,
                payment_status TEXT NOT NULL,
                payment_id TEXT,
                fee_amount REAL NOT NULL,
                service_charge REAL NOT NULL,
                total_amount REAL NOT NULL,
                details_json TEXT NOT NULL,
                rejection_reason TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS federation_request_activities (
                id TEXT PRIMARY KEY,
                request_id TEXT NOT NULL,
                previous_status TEXT,
                new_status TEXT NOT NULL,
                actor_id TEXT,
                description TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS token_balances (
                user_id TEXT PRIMARY KEY,
                balance INTEGER NOT NULL CHECK (balance >= 0),
                lifetime_purchased INTEGER NOT NULL,
                lifetime_spent INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS token_transactions (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                amount INTEGER NOT NULL,
                type TEXT NOT NULL,
                action TEXT NOT NULL,
                description TEXT,
                player_id TEXT,
                balance_after INTEGER NOT NULL,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS consular_reports (
                id TEXT PRIMARY KEY,
                verification_code TEXT NOT NULL UNIQUE,
                letter_id TEXT NOT NULL,
                player_id TEXT NOT NULL,
                report_json TEXT NOT NULL,
                generated_at TEXT NOT NULL,
                valid_until TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS consular_report_access (
                id TEXT PRIMARY KEY,
                report_id TEXT NOT NULL,
                client TEXT,
                accessed_at TEXT NOT NULL
            );
            """
        )
        conn.commit()

    # Players and the records scored against them

    def save_player(self, profile: PlayerProfile) -> PlayerProfile:
        now = _now().isoformat()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO players (id, profile_json, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    profile_json = excluded.profile_json,
                    updated_at = excluded.updated_at
                """,
                (profile.player_id, profile.model_dump_json(), now, now),
            )
            conn.commit()
        return profile

    def get_player(self, player_id: str) -> Optional[PlayerProfile]:
        with self._connect() as conn:
            row = conn.execute("SELECT profile_json FROM players WHERE id = ?", (player_id,)).fetchone()
        if row is None:
            return None
        return PlayerProfile.model_validate_json(row["profile_json"])

    def require_player(self, player_id: str) -> PlayerProfile:
        player = self.get_player(player_id)
        if player is None:
            raise KeyError(f"Player {player_id} not found")
        return player

    def _add_record(self, player_id: str, kind: str, record: BaseModel) -> None:
        self.require_player(player_id)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO player_records (id, player_id, kind, payload_json, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (uuid4().hex, player_id, kind, record.model_dump_json(), _now().isoformat()),
            )
            conn.commit()

    def _list_records(self, player_id: str, kind: str, model: Type[M]) -> List[M]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT payload_json FROM player_records
                WHERE player_id = ? AND kind = ?
                ORDER BY created_at ASC, rowid ASC
                """,
                (player_id, kind),
            ).fetchall()
        return [model.model_validate_json(row["payload_json"]) for row in rows]

    def add_metrics(self, player_id: str, metrics: PlayerMetrics) -> PlayerMetrics:
        if metrics.updated_at is None:
            metrics = metrics.model_copy(update={"updated_at": _now()})
        self._add_record(player_id, "metrics", metrics)
        return metrics

    def list_metrics(self, player_id: str) -> List[PlayerMetrics]:
        return self._list_records(player_id, "metrics", PlayerMetrics)

    def add_video(self, player_id: str, video: Video) -> Video:
        self._add_record(player_id, "video", video)
        return video

    def list_videos(self, player_id: str) -> List[Video]:
        return self._list_records(player_id, "video", Video)

    def add_video_insight(self, player_id: str, insight: VideoInsight) -> VideoInsight:
        self._add_record(player_id, "video_insight", insight)
        return insight

    def list_video_insights(self, player_id: str) -> List[VideoInsight]:
        return self._list_records(player_id, "video_insight", VideoInsight)

    def add_international_record(self, player_id: str, record: InternationalRecord) -> InternationalRecord:
        self._add_record(player_id, "international", record)
        return record

    def list_international_records(self, player_id: str) -> List[InternationalRecord]:
        return self._list_records(player_id, "international", InternationalRecord)

    # Invitation letters

    def save_invitation_letter(self, player_id: str, letter: InvitationLetter) -> InvitationLetter:
        self.require_player(player_id)
        if letter.uploaded_at is None:
            letter = letter.model_copy(update={"uploaded_at": _now()})
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO invitation_letters (
                    id, player_id, status, embassy_notification_status, payload_json, uploaded_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    status = excluded.status,
                    embassy_notification_status = excluded.embassy_notification_status,
                    payload_json = excluded.payload_json
                """,
                (
                    letter.letter_id,
                    player_id,
                    letter.status,
                    letter.embassy_notification_status,
                    letter.model_dump_json(),
                    letter.uploaded_at.isoformat(),
                ),
            )
            conn.commit()
        return letter

    def get_invitation_letter(self, letter_id: str) -> Optional[tuple[str, InvitationLetter]]:
        """Return (player_id, letter) or None."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT player_id, payload_json FROM invitation_letters WHERE id = ?",
                (letter_id,),
            ).fetchone()
        if row is None:
            return None
        return row["player_id"], InvitationLetter.model_validate_json(row["payload_json"])

    def list_invitation_letters(self, player_id: str) -> List[InvitationLetter]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT payload_json FROM invitation_letters
                WHERE player_id = ?
                ORDER BY datetime(uploaded_at) DESC
                """,
                (player_id,),
            ).fetchall()
        return [InvitationLetter.model_validate_json(row["payload_json"]) for row in rows]

    def notify_embassy(
        self,
        letter_id: str,
        *,
        user_id: str,
        amount: int,
        action: str,
        description: Optional[str] = None,
    ) -> tuple[InvitationLetter, TokenTransaction]:
        """Mark the letter notified and charge the user in one transaction.

        Raises ``InvalidTransition`` when the embassy was already notified and
        ``InsufficientTokens`` when the balance cannot cover ``amount``; either
        way neither the letter nor the balance changes.
        """

        if amount <= 0:
            raise ValueError("amount must be positive")
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT player_id, payload_json FROM invitation_letters WHERE id = ?",
                (letter_id,),
            ).fetchone()
            if row is None:
                raise KeyError(f"Invitation letter {letter_id} not found")
            letter = InvitationLetter.model_validate_json(row["payload_json"])
            notified = mark_embassy_notified(letter.embassy_notification_status)
            updated = letter.model_copy(update={"embassy_notification_status": notified.value})
            cursor = conn.execute(
                """
                UPDATE invitation_letters
                SET embassy_notification_status = ?, payload_json = ?
                WHERE id = ? AND embassy_notification_status = ?
                """,
                (notified.value, updated.model_dump_json(), letter_id, letter.embassy_notification_status),
            )
            if cursor.rowcount == 0:
                raise InvalidTransition("embassy notification", letter.embassy_notification_status, notified.value)
            transaction = self._debit(
                conn,
                user_id,
                amount=amount,
                action=action,
                description=description,
                player_id=row["player_id"],
            )
        logger.info("Embassy notified for letter %s; charged %s %d tokens", letter_id, user_id, amount)
        return updated, transaction

    # Consular reports

    def save_consular_report(self, report: ConsularReport) -> ConsularReport:
        """Store ``report`` and flag its invitation letter as having one."""

        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT payload_json FROM invitation_letters WHERE id = ?",
                (report.invitation_letter_id,),
            ).fetchone()
            if row is None:
                raise KeyError(f"Invitation letter {report.invitation_letter_id} not found")
            letter = InvitationLetter.model_validate_json(row["payload_json"]).model_copy(
                update={"consular_report_generated": True, "consular_report_id": report.report_id}
            )
            conn.execute(
                """
                INSERT INTO consular_reports (
                    id, verification_code, letter_id, player_id, report_json, generated_at, valid_until
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    report.report_id,
                    report.verification_code,
                    report.invitation_letter_id,
                    report.player_id,
                    report.model_dump_json(),
                    report.generated_at.isoformat(),
                    report.valid_until.isoformat(),
                ),
            )
            conn.execute(
                "UPDATE invitation_letters SET payload_json = ? WHERE id = ?",
                (letter.model_dump_json(), letter.letter_id),
            )
        logger.info("Stored consular report %s for letter %s", report.verification_code, report.invitation_letter_id)
        return report

    def get_consular_report(self, report_id: str) -> Optional[ConsularReport]:
        with self._connect() as conn:
            row = conn.execute("SELECT report_json FROM consular_reports WHERE id = ?", (report_id,)).fetchone()
        if row is None:
            return None
        return ConsularReport.model_validate_json(row["report_json"])

    def get_consular_report_by_code(self, verification_code: str) -> Optional[ConsularReport]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT report_json FROM consular_reports WHERE verification_code = ?",
                (verification_code,),
            ).fetchone()
        if row is None:
            return None
        return ConsularReport.model_validate_json(row["report_json"])

    def list_consular_reports(self, player_id: str) -> List[ConsularReport]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT report_json FROM consular_reports
                WHERE player_id = ?
                ORDER BY datetime(generated_at) DESC, rowid DESC
                """,
                (player_id,),
            ).fetchall()
        return [ConsularReport.model_validate_json(row["report_json"]) for row in rows]

    def record_report_access(self, report_id: str, *, client: Optional[str] = None) -> ReportAccess:
        access = ReportAccess(access_id=uuid4().hex, report_id=report_id, client=client, accessed_at=_now())
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO consular_report_access (id, report_id, client, accessed_at) VALUES (?, ?, ?, ?)",
                (access.access_id, report_id, client, access.accessed_at.isoformat()),
            )
            conn.commit()
        return access

    def list_report_access(self, report_id: str) -> List[ReportAccess]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM consular_report_access
                WHERE report_id = ?
                ORDER BY accessed_at ASC, rowid ASC
                """,
                (report_id,),
            ).fetchall()
        return [
            ReportAccess(
                access_id=row["id"],
                report_id=row["report_id"],
                client=row["client"],
                accessed_at=datetime.fromisoformat(row["accessed_at"]),
            )
            for row in rows
        ]

    # Assessments

    def save_assessment(
        self,
        player_id: str,
        result: TransferEligibilityResult,
        *,
        league_band: int,
        validity_days: int = 30,
        calculated_at: Optional[datetime] = None,
    ) -> TransferEligibilityAssessment:
        """Replace the player's current assessment with a freshly scored one."""

        calculated_at = calculated_at or _now()
        valid_until = calculated_at + timedelta(days=validity_days)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO assessments (
                    id, player_id, league_band, result_json, calculated_at, valid_until
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(player_id) DO UPDATE SET
                    league_band = excluded.league_band,
                    result_json = excluded.result_json,
                    calculated_at = excluded.calculated_at,
                    valid_until = excluded.valid_until
                """,
                (
                    uuid4().hex,
                    player_id,
                    league_band,
                    result.model_dump_json(),
                    calculated_at.isoformat(),
                    valid_until.isoformat(),
                ),
            )
            conn.commit()
        assessment = self.get_assessment(player_id)
        if assessment is None:  # pragma: no cover
            raise KeyError(f"Assessment for {player_id} not found after upsert")
        return assessment

    def get_assessment(self, player_id: str) -> Optional[TransferEligibilityAssessment]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM assessments WHERE player_id = ?", (player_id,)).fetchone()
        if row is None:
            return None
        return TransferEligibilityAssessment(
            assessment_id=row["id"],
            player_id=row["player_id"],
            league_band_applied=row["league_band"],
            result=TransferEligibilityResult.model_validate_json(row["result_json"]),
            calculated_at=datetime.fromisoformat(row["calculated_at"]),
            valid_until=datetime.fromisoformat(row["valid_until"]),
        )

    # Federation letter requests

    def create_federation_request(
        self,
        *,
        request_number: str,
        player_id: str,
        team_id: str,
        fee_amount: float,
        service_charge: float,
        details: dict,
        actor_id: Optional[str] = None,
    ) -> FederationRequestRecord:
        request_id = uuid4().hex
        now = _now().isoformat()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO federation_requests (
                    id, request_number, player_id, team_id, status, payment_status,
                    payment_id, fee_amount, service_charge, total_amount, details_json,
                    rejection_reason, created_at, updated_at
                ) VALUES (?, ?, ?, ?, 'pending', 'unpaid', NULL, ?, ?, ?, ?, NULL, ?, ?)
                """,
                (
                    request_id,
                    request_number,
                    player_id,
                    team_id,
                    fee_amount,
                    service_charge,
                    fee_amount + service_charge,
                    json.dumps(details),
                    now,
                    now,
                ),
            )
            self._insert_activity(conn, request_id, None, "pending", actor_id, "Request created")
            conn.commit()
        return self._require_request(request_id)

    def get_federation_request(self, request_id: str) -> Optional[FederationRequestRecord]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM federation_requests WHERE id = ?", (request_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_request(row)

    def list_federation_requests(self, *, status: str | None = None, limit: int = 50) -> List[FederationRequestRecord]:
        query = "SELECT * FROM federation_requests"
        params: list[str | int] = []
        if status:
            query += " WHERE status = ?"
            params.append(status)
        query += " ORDER BY datetime(created_at) DESC, rowid DESC LIMIT ?"
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
        return [self._row_to_request(row) for row in rows]

    def count_federation_requests_by_status(self) -> dict[str, int]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS total FROM federation_requests GROUP BY status"
            ).fetchall()
        return {row["status"]: row["total"] for row in rows}

    def update_federation_request(
        self,
        request_id: str,
        *,
        status: str | None = None,
        payment_status: str | None = None,
        payment_id: str | None = None,
        rejection_reason: str | None = None,
        details: dict | None = None,
        actor_id: str | None = None,
        description: str | None = None,
        expected_status: str | None = None,
        expected_payment_status: str | None = None,
    ) -> FederationRequestRecord:
        """Apply the changes, guarded on the status the caller validated against.

        When ``expected_status`` or ``expected_payment_status`` no longer match
        the stored row, nothing is written and ``InvalidTransition`` is raised.
        """

        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT * FROM federation_requests WHERE id = ?", (request_id,)).fetchone()
            if row is None:
                raise KeyError(f"Request {request_id} not found")
            current = self._row_to_request(row)
            new_status = status if status is not None else current.status
            new_payment_status = payment_status if payment_status is not None else current.payment_status
            if expected_status is not None and current.status != expected_status:
                raise InvalidTransition("federation letter request", current.status, new_status)
            if expected_payment_status is not None and current.payment_status != expected_payment_status:
                raise InvalidTransition("payment", current.payment_status, new_payment_status)
            merged_details = {**current.details, **(details or {})}
            cursor = conn.execute(
                """
                UPDATE federation_requests
                SET status = ?,
                    payment_status = ?,
                    payment_id = ?,
                    rejection_reason = ?,
                    details_json = ?,
                    updated_at = ?
                WHERE id = ? AND status = ? AND payment_status = ?
                """,
                (
                    new_status,
                    new_payment_status,
                    payment_id if payment_id is not None else current.payment_id,
                    rejection_reason if rejection_reason is not None else current.rejection_reason,
                    json.dumps(merged_details),
                    _now().isoformat(),
                    request_id,
                    current.status,
                    current.payment_status,
                ),
            )
            if cursor.rowcount == 0:
                raise InvalidTransition("federation letter request", current.status, new_status)
            if new_status != current.status:
                self._insert_activity(
                    conn,
                    request_id,
                    current.status,
                    new_status,
                    actor_id,
                    description or f"Status changed to {new_status}",
                )
            conn.commit()
        return self._require_request(request_id)

    def delete_federation_request(self, request_id: str) -> None:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM federation_requests WHERE id = ?", (request_id,))
            if cursor.rowcount == 0:
                raise KeyError(f"Request {request_id} not found")
            conn.execute("DELETE FROM federation_request_activities WHERE request_id = ?", (request_id,))
            conn.commit()

    def list_request_activities(self, request_id: str) -> List[RequestActivity]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM federation_request_activities
                WHERE request_id = ?
                ORDER BY created_at ASC, rowid ASC
                """,
                (request_id,),
            ).fetchall()
        return [
            RequestActivity(
                activity_id=row["id"],
                request_id=row["request_id"],
                previous_status=row["previous_status"],
                new_status=row["new_status"],
                actor_id=row["actor_id"],
                description=row["description"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    def _insert_activity(
        self,
        conn: sqlite3.Connection,
        request_id: str,
        previous_status: Optional[str],
        new_status: str,
        actor_id: Optional[str],
        description: str,
    ) -> None:
        conn.execute(
            """
            INSERT INTO federation_request_activities (
                id, request_id, previous_status, new_status, actor_id, description, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (uuid4().hex, request_id, previous_status, new_status, actor_id, description, _now().isoformat()),
        )

    def _require_request(self, request_id: str) -> FederationRequestRecord:
        record = self.get_federation_request(request_id)
        if record is None:
            raise KeyError(f"Request {request_id} not found")
        return record

    def _row_to_request(self, row: sqlite3.Row) -> FederationRequestRecord:
        return FederationRequestRecord(
            request_id=row["id"],
            request_number=row["request_number"],
            player_id=row["player_id"],
            team_id=row["team_id"],
            status=row["status"],
            payment_status=row["payment_status"],
            payment_id=row["payment_id"],
            fee_amount=row["fee_amount"],
            service_charge=row["service_charge"],
            total_amount=row["total_amount"],
            details=json.loads(row["details_json"]),
            rejection_reason=row["rejection_reason"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # Token ledger

    def get_token_balance(self, user_id: str) -> Optional[TokenBalance]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM token_balances WHERE user_id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_balance(row)

    def ensure_token_balance(self, user_id: str, *, welcome_bonus: int = WELCOME_BONUS) -> TokenBalance:
        """Return the user's balance, opening it with the welcome bonus on first use."""

        now = _now().isoformat()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO token_balances (
                    user_id, balance, lifetime_purchased, lifetime_spent, created_at, updated_at
                ) VALUES (?, ?, ?, 0, ?, ?)
                """,
                (user_id, welcome_bonus, welcome_bonus, now, now),
            )
            if cursor.rowcount == 1 and welcome_bonus > 0:
                self._insert_transaction(
                    conn,
                    user_id=user_id,
                    amount=welcome_bonus,
                    type_="credit",
                    action="welcome_bonus",
                    description="Welcome bonus tokens",
                    player_id=None,
                    balance_after=welcome_bonus,
                )
                logger.info("Opened token balance for %s with %d bonus tokens", user_id, welcome_bonus)
            conn.commit()
        balance = self.get_token_balance(user_id)
        if balance is None:  # pragma: no cover
            raise KeyError(f"Token balance for {user_id} not found after insert")
        return balance

    def spend_tokens(
        self,
        user_id: str,
        *,
        amount: int,
        action: str,
        description: Optional[str] = None,
        player_id: Optional[str] = None,
    ) -> TokenTransaction:
        """Debit tokens with a single conditional UPDATE so concurrent spends cannot overdraw."""

        if amount <= 0:
            raise ValueError("amount must be positive")
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            transaction = self._debit(
                conn,
                user_id,
                amount=amount,
                action=action,
                description=description,
                player_id=player_id,
            )
        logger.info("Debited %d tokens from %s for %s", amount, user_id, action)
        return transaction

    def _debit(
        self,
        conn: sqlite3.Connection,
        user_id: str,
        *,
        amount: int,
        action: str,
        description: Optional[str],
        player_id: Optional[str],
    ) -> TokenTransaction:
        cursor = conn.execute(
            """
            UPDATE token_balances
            SET balance = balance - ?,
                lifetime_spent = lifetime_spent + ?,
                updated_at = ?
            WHERE user_id = ? AND balance >= ?
            """,
            (amount, amount, _now().isoformat(), user_id, amount),
        )
        if cursor.rowcount == 0:
            row = conn.execute("SELECT balance FROM token_balances WHERE user_id = ?", (user_id,)).fetchone()
            raise InsufficientTokens(user_id, amount, row["balance"] if row is not None else 0)
        balance_after = conn.execute(
            "SELECT balance FROM token_balances WHERE user_id = ?", (user_id,)
        ).fetchone()["balance"]
        return self._insert_transaction(
            conn,
            user_id=user_id,
            amount=amount,
            type_="debit",
            action=action,
            description=description,
            player_id=player_id,
            balance_after=balance_after,
        )

    def credit_tokens(
        self,
        user_id: str,
        *,
        amount: int,
        action: str = "purchase",
        description: Optional[str] = None,
    ) -> TokenTransaction:
        if amount <= 0:
            raise ValueError("amount must be positive")
        self.ensure_token_balance(user_id)
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            conn.execute(
                """
                UPDATE token_balances
                SET balance = balance + ?,
                    lifetime_purchased = lifetime_purchased + ?,
                    updated_at = ?
                WHERE user_id = ?
                """,
                (amount, amount, _now().isoformat(), user_id),
            )
            balance_after = conn.execute(
                "SELECT balance FROM token_balances WHERE user_id = ?", (user_id,)
            ).fetchone()["balance"]
            transaction = self._insert_transaction(
                conn,
                user_id=user_id,
                amount=amount,
                type_="credit",
                action=action,
                description=description,
                player_id=None,
                balance_after=balance_after,
            )
        logger.info("Credited %d tokens to %s for %s", amount, user_id, action)
        return transaction

    def list_token_transactions(self, user_id: str, limit: int = 50) -> List[TokenTransaction]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM token_transactions
                WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [self._row_to_transaction(row) for row in rows]

    def _insert_transaction(
        self,
        conn: sqlite3.Connection,
        *,
        user_id: str,
        amount: int,
        type_: str,
        action: str,
        description: Optional[str],
        player_id: Optional[str],
        balance_after: int,
    ) -> TokenTransaction:
        created_at = _now()
        transaction_id = uuid4().hex
        conn.execute(
            """
            INSERT INTO token_transactions (
                id, user_id, amount, type, action, description, player_id, balance_after, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                transaction_id,
                user_id,
                amount,
                type_,
                action,
                description,
                player_id,
                balance_after,
                created_at.isoformat(),
            ),
        )
        return TokenTransaction(
            transaction_id=transaction_id,
            user_id=user_id,
            amount=amount,
            type=type_,
            action=action,
            description=description,
            player_id=player_id,
            balance_after=balance_after,
            created_at=created_at,
        )

    def _row_to_balance(self, row: sqlite3.Row) -> TokenBalance:
        return TokenBalance(
            user_id=row["user_id"],
            balance=row["balance"],
            lifetime_purchased=row["lifetime_purchased"],
            lifetime_spent=row["lifetime_spent"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_transaction(self, row: sqlite3.Row) -> TokenTransaction:
        return TokenTransaction(
            transaction_id=row["id"],
            user_id=row["user_id"],
            amount=row["amount"],
            type=row["type"],
            action=row["action"],
            description=row["description"],
            player_id=row["player_id"],
            balance_after=row["balance_after"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


__all__: Iterable[str] = [
    "EligibilityStore",
    "FederationRequestRecord",
    "ReportAccess",
    "RequestActivity",
    "TokenBalance",
    "TokenTransaction",
]
