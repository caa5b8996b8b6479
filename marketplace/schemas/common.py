"""Uniform response envelope."""

from typing import Generic, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """``{success, data?, message?}`` wrapper returned by every endpoint."""

    success: bool = True
    data: DataT | None = None
    message: str | None = None
