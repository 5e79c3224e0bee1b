"""Error types shared by the API handlers and the persistence stores."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    path: str | None = None
    status: int = 400
    detail: dict | None = None
    issues: list | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        base = f"{self.code}: {self.message}"
        return f"{base} (path={self.path})" if self.path else base

    def to_issue(self) -> dict:
        return {"code": self.code, "message": self.message, "path": self.path, "detail": self.detail}

    def to_issues(self) -> list[dict]:
        return list(self.issues) if self.issues else [self.to_issue()]


def unauthenticated() -> ApiError:
    return ApiError("UNAUTHENTICATED", "Unauthenticated", status=401)


def forbidden(message: str = "Unauthorized") -> ApiError:
    return ApiError("FORBIDDEN", message, "storeId", status=403)


def not_found(label: str, path: str = "id") -> ApiError:
    return ApiError("NOT_FOUND", f"{label} not found", path, status=404)


def conflict(message: str, detail: dict | None = None) -> ApiError:
    return ApiError("CONFLICT", message, status=409, detail=detail)


@dataclass
class RequestFailed(Exception):
    """Raised by dashboard API clients when a call does not succeed."""

    message: str
    status: int | None = None
    errors: list | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return f"{self.status}: {self.message}" if self.status else self.message


@dataclass
class StoreError(Exception):
    message: str

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return self.message


@dataclass
class RecordNotFound(StoreError):
    entity: str
    record_id: str


@dataclass
class ReferenceConflict(StoreError):
    entity: str
    record_id: str
    referenced_by: str | None = None
