from datetime import timedelta

from click.testing import CliRunner

import main
from billing.core.exceptions import TransportFailure
from billing.models.course import CourseType
from billing.utils.clock import utcnow
from billing.utils.mailer import Mailer


def test_report(make_account, make_course, add_payment):
    account = make_account("alice@example.com")
    course = make_course("python", CourseType.BUY, price="30")
    add_payment(account.id, course.id, "30", created_at=utcnow() - timedelta(days=2))

    result = CliRunner().invoke(main.cli, ["report", "--days", "7"])

    assert result.exit_code == 0, result.output
    assert "alice@example.com" in result.output
    assert "Total: 30" in result.output


def test_notify_expiring_exit_code(monkeypatch, make_account, make_course, add_payment):
    account = make_account("alice@example.com")
    course = make_course("figma", CourseType.RENT, price="10")
    add_payment(account.id, course.id, "10", expires_at=utcnow() + timedelta(hours=3))

    def refuse(self, recipient, subject, body):
        raise TransportFailure(f"Failed to send mail to {recipient}: refused")

    monkeypatch.setattr(Mailer, "send", refuse)

    result = CliRunner().invoke(main.cli, ["notify-expiring", "--window-hours", "24"])

    assert result.exit_code == 1
    assert "Failed: alice@example.com" in result.output


def test_notify_expiring_nothing_due():
    result = CliRunner().invoke(main.cli, ["notify-expiring"])

    assert result.exit_code == 0
    assert "Sent: 0" in result.output
