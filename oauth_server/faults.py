"""
Chaos injection: a share of token and userinfo requests fail with 500 server_error before any
validation, so clients have to implement retry and error handling. Each request draws independently.
"""
import logging
import random
from typing import Protocol

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from oauth_server.audit import EVENT_SERVER_ERROR, OUTCOME_FAIL, get_client_ip, log_audit
from oauth_server.config import SERVER_ERROR_RATE
from oauth_server.database import get_db
from oauth_server.errors import SERVER_ERROR, OAuthError

logger = logging.getLogger(__name__)


class FaultInjector(Protocol):
    def should_fail(self) -> bool:
        ...


class RandomFaultInjector:
    """Fails with probability `rate`. Uses the OS entropy source; never seeded."""

    def __init__(self, rate: float = SERVER_ERROR_RATE):
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"fault rate must be between 0 and 1, got {rate}")
        self.rate = rate
        self._random = random.SystemRandom()

    def should_fail(self) -> bool:
        return self._random.random() < self.rate


_injector = RandomFaultInjector()


def get_fault_injector() -> FaultInjector:
    """Dependency: override in tests with a deterministic injector."""
    return _injector


def simulate_server_error(
    request: Request,
    injector: FaultInjector = Depends(get_fault_injector),
    db: Session = Depends(get_db),
) -> None:
    """Route dependency: raise 500 server_error when the injector says so."""
    if injector.should_fail():
        logger.warning("Injected server_error for %s %s", request.method, request.url.path)
        log_audit(db, EVENT_SERVER_ERROR, ip=get_client_ip(request), outcome=OUTCOME_FAIL)
        raise OAuthError(
            SERVER_ERROR,
            "The authorization server encountered an unexpected condition that prevented it "
            "from fulfilling the request",
            status_code=500,
        )
