from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, SerializerFunctionWrapHandler, model_serializer

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Response envelope shared by every endpoint.

    ``data`` is only present on success and ``error`` only on failure; absent
    keys are dropped from the wire instead of being sent as null.
    """

    success: bool = True
    message: str = "OK"
    data: T | None = None
    error: str | None = None

    @model_serializer(mode="wrap")
    def _drop_absent_keys(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        out = handler(self)
        if self.data is None:
            out.pop("data", None)
        if self.error is None:
            out.pop("error", None)
        return out


def ok(data: T, message: str = "OK") -> ApiResponse[T]:
    return ApiResponse(success=True, message=message, data=data)


class HealthData(BaseModel):
    status: str = "ok"
    database: str = "ok"


class IdData(BaseModel):
    id: str = Field(min_length=1)
