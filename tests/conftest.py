"""Pytest configuration and fixtures."""

from unittest.mock import AsyncMock, Mock

import pytest

from storage import SessionStore, TicketStore

from .fakes import FakeBot, make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def tickets():
    return TicketStore()


@pytest.fixture
def fake_bot():
    return FakeBot()


@pytest.fixture
def mock_bot():
    """Bot double whose send_message returns messages with increasing ids."""
    bot = Mock()
    counter = iter(range(700, 800))
    bot.send_message = AsyncMock(side_effect=lambda *args, **kwargs: Mock(message_id=next(counter)))
    return bot


@pytest.fixture
def dispatcher(settings, sessions, tickets):
    from bot import build_dispatcher

    return build_dispatcher(settings, sessions=sessions, tickets=tickets)
