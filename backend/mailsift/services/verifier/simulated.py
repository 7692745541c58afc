# backend/mailsift/services/verifier/simulated.py
import asyncio

from ...models import ValidationStatus
from .base import Verdict, Verifier

# MillionVerifier result codes
RESULT_CODES = {
    ValidationStatus.ok: 1,
    ValidationStatus.invalid: 2,
    ValidationStatus.catch_all: 3,
    ValidationStatus.disposable: 4,
}


def classify(email: str) -> ValidationStatus:
    if "@" not in email:
        return ValidationStatus.invalid
    if "disposable" in email or "temp" in email:
        return ValidationStatus.disposable
    if "catch_all" in email:
        return ValidationStatus.catch_all
    return ValidationStatus.ok


class SimulatedVerifier(Verifier):
    """
    Offline stand-in for the MillionVerifier API.

    Answers with the same payload shape the real API returns, after a
    small fixed delay standing in for network latency.
    """

    def __init__(self, delay: float = 0.01):
        self.delay = delay

    async def verify(self, email: str) -> Verdict:
        if self.delay:
            await asyncio.sleep(self.delay)
        status = classify(email)
        return Verdict(
            status=status,
            payload={
                "status": status.value,
                "resultcode": RESULT_CODES[status],
                "result": status.value,
                "credits": 99,
                "executiontime": 0.1,
            },
        )
