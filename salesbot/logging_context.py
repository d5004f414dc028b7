"""
Tags log lines with the buyer currently being served.

Inside ``user_scope(psid)`` every logger returned by ``user_logger`` prefixes
its messages with ``[psid]`` and sets ``record.psid`` for structured
handlers. The scope is a ContextVar, so concurrent turns on the same event
loop never see each other's buyer.

Usage:
    logger = user_logger(__name__)

    with user_scope(event.user_id):
        logger.info("Turn started")  # "[PSID-123] Turn started"
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_psid: ContextVar[Optional[str]] = ContextVar("psid", default=None)


@contextmanager
def user_scope(psid: str) -> Iterator[None]:
    """Attribute log lines to ``psid`` until the block exits."""
    token = _psid.set(psid)
    try:
        yield
    finally:
        _psid.reset(token)


def current_psid() -> Optional[str]:
    return _psid.get()


class PsidAdapter(logging.LoggerAdapter):
    """Adds the scoped PSID to the message and to ``extra``."""

    def process(self, msg, kwargs):
        psid = _psid.get()
        if psid is None:
            return msg, kwargs
        kwargs["extra"] = {**(kwargs.get("extra") or {}), "psid": psid}
        return f"[{psid}] {msg}", kwargs


def user_logger(name: str) -> PsidAdapter:
    return PsidAdapter(logging.getLogger(name), {})
