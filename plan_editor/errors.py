"""
Error taxonomy and structured results for plan processing.

Every failure a caller can see resolves to one of three kinds:
validation (bad plan, nothing touched), anchor_not_found (a symbolic
reference could not be resolved) or execution_failed (the host refused a
mutation, a search came back empty, or a block vanished between extraction
and execution). None of them are retried here; callers decide.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Union

ErrorType = Literal["validation", "anchor_not_found", "execution_failed"]


class PlanEditorError(Exception):
    """Base class for plan interpreter errors."""

    error_type: ErrorType = "execution_failed"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})


class ValidationError(PlanEditorError):
    """Plan failed schema or semantic validation. Raised before any mutation."""

    error_type: ErrorType = "validation"


class AnchorNotFoundError(PlanEditorError):
    """No resolution strategy could map the anchor to a live range."""

    error_type: ErrorType = "anchor_not_found"

    def __init__(self, message: str, anchor: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.anchor = anchor
        self.details.setdefault("anchor", anchor)


class ExecutionError(PlanEditorError):
    """A host mutation failed or a referenced location could not be found."""

    error_type: ErrorType = "execution_failed"

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.cause = cause


class HostUnavailableError(ExecutionError):
    """The document host capability surface does not exist here."""

    def __init__(self, message: str = "Document host is not available. Open a document before editing."):
        super().__init__(message, details={"host_unavailable": True})


@dataclass
class SuccessResult:
    message: str
    ok: Literal[True] = True

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": True, "message": self.message}


@dataclass
class ErrorResult:
    error_type: ErrorType
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    ok: Literal[False] = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"ok": False, "error_type": self.error_type, "message": self.message}
        if self.details:
            out["details"] = self.details
        return out


ExecutionResult = Union[SuccessResult, ErrorResult]


def error_result(exc: BaseException, **details: Any) -> ErrorResult:
    """Map an exception to the structured result a caller renders."""
    if isinstance(exc, PlanEditorError):
        merged = dict(exc.details)
        if isinstance(exc, ExecutionError) and exc.cause is not None:
            merged.setdefault("cause", f"{type(exc.cause).__name__}: {exc.cause}")
        merged.update(details)
        return ErrorResult(error_type=exc.error_type, message=exc.message, details=merged)
    merged = {"cause": type(exc).__name__}
    merged.update(details)
    return ErrorResult(
        error_type="execution_failed",
        message=f"Execution failed: {exc}",
        details=merged,
    )
