from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from transferscore.reports import ConsularReport


class ConsularReportVerification(BaseModel):
    valid: bool
    verification_code: str
    valid_until: datetime
    message: Optional[str] = None
    report: Optional[ConsularReport] = None


class VideoVerification(BaseModel):
    valid: bool
    video_id: str
    title: str
    player_id: str
    verification_code: str
    valid_until: datetime
