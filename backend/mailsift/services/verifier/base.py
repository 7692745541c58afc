# backend/mailsift/services/verifier/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict

from ...models import ValidationStatus


@dataclass
class Verdict:
    status: ValidationStatus
    payload: Dict[str, Any] = field(default_factory=dict)


class Verifier(ABC):
    """Classifies a single email address. Implementations must not touch the database."""

    @abstractmethod
    async def verify(self, email: str) -> Verdict:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
