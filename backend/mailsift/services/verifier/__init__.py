# backend/mailsift/services/verifier/__init__.py

from .base import Verdict, Verifier
from .simulated import SimulatedVerifier, classify
from .millionverifier import MillionVerifierClient


def build_verifier(settings) -> Verifier:
    backend = settings.VERIFIER_BACKEND.lower()
    if backend == "simulated":
        return SimulatedVerifier(delay=settings.VERIFIER_DELAY)
    if backend == "millionverifier":
        return MillionVerifierClient(
            api_key=settings.MILLIONVERIFIER_API_KEY,
            base_url=settings.MILLIONVERIFIER_URL,
            timeout=settings.MILLIONVERIFIER_TIMEOUT,
        )
    raise ValueError(f"Unknown VERIFIER_BACKEND: {settings.VERIFIER_BACKEND}")


__all__ = [
    "Verdict",
    "Verifier",
    "SimulatedVerifier",
    "MillionVerifierClient",
    "classify",
    "build_verifier",
]
