import smtplib
from datetime import timedelta

import pytest

from billing.core.exceptions import TransportFailure
from billing.models.course import CourseType
from billing.schemas.transaction import ExpiringRental
from billing.services.notifier import ExpiryNotifier, render_digest
from billing.utils.clock import utcnow
from billing.utils.mailer import Mailer


class FakeMailer:
    """Collects messages; recipients listed in `failing` raise TransportFailure."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.outbox = []

    def send(self, recipient, subject, body):
        if recipient in self.failing:
            raise TransportFailure(f"Failed to send mail to {recipient}: refused")
        self.outbox.append((recipient, subject, body))


@pytest.fixture
def rentals(db, make_account, make_course, add_payment):
    """
    alice: two rentals ending within a day and one ending next week.
    bob: one rental ending within a day.
    carol: one rental that already ended.
    """
    now = utcnow()
    alice = make_account("alice@example.com", db=db)
    bob = make_account("bob@example.com", db=db)
    carol = make_account("carol@example.com", db=db)
    figma = make_course("figma", CourseType.RENT, price="10", name="Figma", db=db)
    physics = make_course("physics", CourseType.RENT, price="20", name="Physics", db=db)

    add_payment(alice.id, figma.id, "10", expires_at=now + timedelta(hours=20), db=db)
    add_payment(alice.id, physics.id, "20", expires_at=now + timedelta(hours=2), db=db)
    add_payment(alice.id, physics.id, "20", expires_at=now + timedelta(days=6), db=db)
    add_payment(bob.id, figma.id, "10", expires_at=now + timedelta(hours=5), db=db)
    add_payment(carol.id, figma.id, "10", expires_at=now - timedelta(hours=1), db=db)
    return now


def test_rentals_grouped_per_account(db, rentals):
    grouped = ExpiryNotifier(db, mailer=FakeMailer()).find_expiring(
        window=timedelta(days=1), now=rentals
    )

    assert list(grouped) == ["alice@example.com", "bob@example.com"]
    assert [r.course_code for r in grouped["alice@example.com"]] == ["physics", "figma"]
    assert [r.course_code for r in grouped["bob@example.com"]] == ["figma"]


def test_one_digest_per_account(db, rentals):
    mailer = FakeMailer()

    report = ExpiryNotifier(db, mailer=mailer).run(
        window=timedelta(days=1), now=rentals
    )

    assert report.ok
    assert report.sent == ["alice@example.com", "bob@example.com"]
    recipients = [recipient for recipient, _, _ in mailer.outbox]
    assert recipients == ["alice@example.com", "bob@example.com"]
    alice_body = mailer.outbox[0][2]
    assert "Figma (figma)" in alice_body
    assert "Physics (physics)" in alice_body


def test_failed_delivery_does_not_stop_the_run(db, rentals):
    mailer = FakeMailer(failing={"alice@example.com"})

    report = ExpiryNotifier(db, mailer=mailer).run(
        window=timedelta(days=1), now=rentals
    )

    assert not report.ok
    assert list(report.failed) == ["alice@example.com"]
    assert report.sent == ["bob@example.com"]
    assert [recipient for recipient, _, _ in mailer.outbox] == ["bob@example.com"]


def test_zero_window_is_not_the_default(db, rentals):
    grouped = ExpiryNotifier(db, mailer=FakeMailer()).find_expiring(
        window=timedelta(0), now=rentals
    )

    assert grouped == {}


def test_nothing_to_send(db):
    mailer = FakeMailer()

    report = ExpiryNotifier(db, mailer=mailer).run()

    assert report.ok
    assert report.sent == []
    assert mailer.outbox == []


def test_render_digest_lists_every_rental():
    expires = utcnow().replace(microsecond=0)
    body = render_digest(
        "alice@example.com",
        [
            ExpiringRental("alice@example.com", "figma", "Figma", expires),
            ExpiringRental("alice@example.com", "physics", "Physics", expires),
        ],
    )

    assert body.startswith("Hello, alice@example.com!")
    assert f"until {expires:%Y-%m-%d %H:%M} UTC" in body
    assert body.count("  - ") == 2


def test_mailer_wraps_smtp_errors(monkeypatch):
    def refuse(self):
        raise smtplib.SMTPConnectError(421, "unavailable")

    monkeypatch.setattr(Mailer, "_connect", refuse)

    with pytest.raises(TransportFailure) as exc_info:
        Mailer().send("alice@example.com", "subject", "body")

    assert exc_info.value.status_code == 502
    assert exc_info.value.error_type == "transport_failure"
