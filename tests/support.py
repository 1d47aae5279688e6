"""Test doubles shared by the fixtures and the tests."""
from __future__ import annotations

from concurrent.futures import Executor, Future
from datetime import datetime, timedelta

from models.base_model import utcnow


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or utcnow()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class InlineExecutor(Executor):
    """Runs submitted work immediately so mail is observable inside a test."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class RecordingMailer:
    def __init__(self):
        self.sent = []

    def send(self, to: str, subject: str, html_body: str) -> None:
        self.sent.append({"to": to, "subject": subject, "html": html_body})

    def last_to(self, to: str):
        matches = [m for m in self.sent if m["to"] == to]
        return matches[-1] if matches else None
