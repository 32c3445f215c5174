from __future__ import annotations

from typing import Optional

from homeassistant.exceptions import HomeAssistantError


class XiaomiError(HomeAssistantError):
    """Failure raised by the Xiaomi session.

    ``code`` is a short machine-readable category (``EAUTH``, ``ETIMEOUT``...),
    None when the failure has no category.
    """

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
