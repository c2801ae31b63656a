"""Tests for CancellationToken."""

import time

from bastion.cancellation import CancellationToken


class TestCancellationToken:
    def test_no_deadline(self):
        token = CancellationToken()

        assert token.remaining() is None
        assert not token.cancelled
        assert token.describe() is None

    def test_deadline_expires(self):
        token = CancellationToken(timeout=0.05)
        assert not token.cancelled

        time.sleep(0.1)

        assert token.expired
        assert token.cancelled
        assert token.remaining() == 0.0
        assert token.describe() == "deadline exceeded"

    def test_cancel_runs_callbacks_once(self):
        token = CancellationToken()
        calls = []
        token.register(lambda: calls.append("closed"))

        token.cancel("client went away")
        token.cancel("again")

        assert calls == ["closed"]
        assert token.cancelled
        assert token.describe() == "client went away"

    def test_register_after_cancel_runs_immediately(self):
        token = CancellationToken()
        token.cancel()
        calls = []

        token.register(lambda: calls.append(1))

        assert calls == [1]

    def test_unregistered_callback_is_not_called(self):
        token = CancellationToken()
        calls = []
        callback = lambda: calls.append(1)  # noqa: E731
        token.register(callback)
        token.unregister(callback)

        token.cancel()

        assert calls == []
