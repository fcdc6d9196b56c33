"""ServiceResult: what every inspection operation hands back to the CLI.

INVARIANT: services report failures inside the result; they never raise
to the command layer.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Machine-readable failure: a stable ``code`` plus a human message."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one service operation.

    ``data`` and ``warnings`` are meaningful when ``ok`` is True,
    ``error`` when it is False.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None

    @classmethod
    def success(
        cls,
        op: str,
        data: dict[str, Any],
        warnings: list[str] | None = None,
    ) -> ServiceResult:
        return cls(ok=True, op=op, data=data, warnings=warnings or [])

    @classmethod
    def failure(cls, op: str, code: str, message: str, **detail: Any) -> ServiceResult:
        return cls(
            ok=False,
            op=op,
            error=ServiceError(code=code, message=message, detail=detail),
        )
