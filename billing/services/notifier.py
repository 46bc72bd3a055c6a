# billing/services/notifier.py
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from itertools import groupby
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from billing.core.config import settings
from billing.core.exceptions import TransportFailure
from billing.schemas.transaction import ExpiringRental
from billing.services.transaction import TransactionService
from billing.utils.clock import utcnow
from billing.utils.mailer import Mailer

logger = logging.getLogger(__name__)


@dataclass
class NotificationReport:
    sent: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def render_digest(email: str, rentals: List[ExpiringRental]) -> str:
    lines = [
        f"Hello, {email}!",
        "",
        "The rental of the following courses ends soon:",
        "",
    ]
    for rental in rentals:
        lines.append(
            f"  - {rental.course_name} ({rental.course_code}): "
            f"until {rental.expires_at:%Y-%m-%d %H:%M} UTC"
        )
    lines += ["", "Pay for a course again to extend access for another rental period."]
    return "\n".join(lines)


class ExpiryNotifier:
    """
    Sends each account one digest of its rentals that end within the window.
    A delivery failure is logged and reported; the remaining accounts are still mailed.
    """

    def __init__(self, db: Session, mailer: Optional[Mailer] = None):
        self.db = db
        self.ledger = TransactionService(db)
        self.mailer = mailer or Mailer()

    def find_expiring(
        self, window: Optional[timedelta] = None, now: Optional[datetime] = None
    ) -> Dict[str, List[ExpiringRental]]:
        if window is None:
            window = timedelta(hours=settings.notifier_window_hours)
        rentals = self.ledger.find_expiring(window=window, now=now or utcnow())
        return {
            email: list(items)
            for email, items in groupby(rentals, key=lambda r: r.email)
        }

    def run(
        self, window: Optional[timedelta] = None, now: Optional[datetime] = None
    ) -> NotificationReport:
        grouped = self.find_expiring(window=window, now=now)
        # Release the read transaction before talking to the mail server
        self.db.rollback()

        report = NotificationReport()
        for email, rentals in grouped.items():
            try:
                self.mailer.send(
                    email, settings.notifier_subject, render_digest(email, rentals)
                )
            except TransportFailure as e:
                logger.error(f"Expiry digest for {email} not delivered: {e.message}")
                report.failed[email] = e.message
                continue
            report.sent.append(email)

        logger.info(
            f"Expiry notification run finished: {len(report.sent)} sent, "
            f"{len(report.failed)} failed"
        )
        return report
