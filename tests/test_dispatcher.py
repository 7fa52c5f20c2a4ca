"""Notification dispatcher: rendering per channel and failure reporting."""
import pytest

from slawatch.config import NotificationKind
from slawatch.notifications.application import NotificationDispatcher, TemplateRenderer
from slawatch.notifications.infrastructure import FileTemplateStore
from tests.conftest import RecordingChannel


@pytest.fixture
def template_root(tmp_path):
    (tmp_path / "email").mkdir()
    (tmp_path / "teams").mkdir()
    (tmp_path / "email" / "breach.html").write_text("<p>{{ ticketId }} {{ slaName }}</p>", encoding="utf-8")
    (tmp_path / "teams" / "breach.json").write_text('{"text": "{{ ticketId }}"}', encoding="utf-8")
    return tmp_path


def _dispatcher(template_root, email=None, teams=None):
    channels = {}
    if email is not None:
        channels[NotificationKind.EMAIL] = email
    if teams is not None:
        channels[NotificationKind.TEAMS] = teams
    return NotificationDispatcher(TemplateRenderer(FileTemplateStore(template_root)), channels)


class TestSendEmail:
    @pytest.mark.asyncio
    async def test_renders_and_delivers(self, template_root):
        email = RecordingChannel()
        dispatcher = _dispatcher(template_root, email=email)

        ok = await dispatcher.send_email("ops@example.com", "SLA breach: Response", "breach.html",
                                         {"ticketId": "T1", "slaName": "Response"})

        assert ok is True
        assert len(email.sent) == 1
        sent = email.sent[0]
        assert sent.kind == NotificationKind.EMAIL
        assert sent.destination == "ops@example.com"
        assert sent.subject == "SLA breach: Response"
        assert sent.body == "<p>T1 Response</p>"

    @pytest.mark.asyncio
    async def test_missing_template_returns_false_without_delivery(self, template_root):
        email = RecordingChannel()
        dispatcher = _dispatcher(template_root, email=email)

        ok = await dispatcher.send_email("ops@example.com", "s", "absent.html", {})

        assert ok is False
        assert email.attempts == 0

    @pytest.mark.asyncio
    async def test_delivery_exception_returns_false(self, template_root):
        email = RecordingChannel(fail_first=1)
        dispatcher = _dispatcher(template_root, email=email)

        ok = await dispatcher.send_email("ops@example.com", "s", "breach.html", {"ticketId": "T1"})

        assert ok is False
        assert email.attempts == 1

    @pytest.mark.asyncio
    async def test_rejected_delivery_returns_false(self, template_root):
        dispatcher = _dispatcher(template_root, email=RecordingChannel(accept=False))
        assert await dispatcher.send_email("ops@example.com", "s", "breach.html", {}) is False

    @pytest.mark.asyncio
    async def test_no_channel_for_kind(self, template_root):
        dispatcher = _dispatcher(template_root, teams=RecordingChannel())
        assert await dispatcher.send_email("ops@example.com", "s", "breach.html", {}) is False


class TestSendTeamsWebhook:
    @pytest.mark.asyncio
    async def test_uses_teams_templates_and_channel(self, template_root):
        email, teams = RecordingChannel(), RecordingChannel()
        dispatcher = _dispatcher(template_root, email=email, teams=teams)

        ok = await dispatcher.send_teams_webhook("https://hooks.example.com/x", "breach.json", {"ticketId": "T9"})

        assert ok is True
        assert email.sent == []
        assert teams.sent[0].destination == "https://hooks.example.com/x"
        assert teams.sent[0].body == '{"text": "T9"}'
        assert teams.sent[0].subject is None

    @pytest.mark.asyncio
    async def test_email_template_name_not_found_for_teams(self, template_root):
        teams = RecordingChannel()
        dispatcher = _dispatcher(template_root, teams=teams)
        assert await dispatcher.send_teams_webhook("https://hooks.example.com/x", "breach.html", {}) is False
        assert teams.attempts == 0


@pytest.mark.asyncio
async def test_close_closes_all_channels(template_root):
    email, teams = RecordingChannel(), RecordingChannel()
    await _dispatcher(template_root, email=email, teams=teams).close()
    assert email.closed and teams.closed
