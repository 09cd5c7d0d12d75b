from __future__ import annotations

import hmac
from typing import Optional


class AdminGate:
    """Shared-secret check for mutating endpoints.

    With no secret configured every request is rejected, so a deployment
    without ADMIN_SECRET serves read-only prices.
    """

    def __init__(self, secret: Optional[str]):
        self._secret = secret or None

    @property
    def enabled(self) -> bool:
        return self._secret is not None

    def authorize(self, provided: Optional[str]) -> bool:
        if self._secret is None or not provided:
            return False
        return hmac.compare_digest(provided.encode("utf-8"), self._secret.encode("utf-8"))
