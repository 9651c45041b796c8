"""Root error classes shared by every mp-reliability package."""

from __future__ import annotations

import json
from typing import Any


class BaseError(Exception):
    """Error carrying a machine-readable ``code`` and a ``detail`` mapping.

    ``str(err)`` renders :meth:`to_dict` as single-line JSON so errors stay
    greppable in execution reports.  A *cause* is chained as ``__cause__``.
    """

    default_code: str = "base_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        detail: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code
        self.detail: dict[str, Any] = dict(detail) if detail else {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code, "message": self.message, "detail": self.detail}
        if self.cause is not None:
            out["cause"] = repr(self.cause)
        return out

    def log_fields(self) -> dict[str, Any]:
        """Flat key/values for structlog: ``error_code``, ``error_message`` and the detail keys."""
        fields: dict[str, Any] = {"error_code": self.code, "error_message": self.message}
        fields.update(self.detail)
        return fields

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ApplicationError(BaseError):
    """Engine-level failure unrelated to the operation under test (wiring, config, open circuits)."""

    default_code = "application_error"


__all__ = ["ApplicationError", "BaseError"]
