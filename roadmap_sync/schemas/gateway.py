"""Gateway Envelope — the fail-soft {data} | {error} result of every remote call."""

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from roadmap_sync.core.errors import RemoteFailureError

T = TypeVar("T", bound=BaseModel)


class GatewayResponse(BaseModel):
    """Either `data` or `error` is set. Queries carry a list in `data`."""
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any) -> "GatewayResponse":
        return cls(data=data)

    @classmethod
    def failure(cls, error: str) -> "GatewayResponse":
        return cls(error=error)

    def value_of(self, key: str) -> Any:
        """Read one key from an action payload (None when absent)."""
        if isinstance(self.data, dict):
            return self.data.get(key)
        return None

    def first_value(self, key: str) -> Any:
        """Read one key from the first row of a query payload (None when absent)."""
        if isinstance(self.data, list) and self.data and isinstance(self.data[0], dict):
            return self.data[0].get(key)
        return None

    def records(self, model: type[T]) -> list[T]:
        """Validate a query payload into a list of models.

        Malformed records are a backend contract violation and surface
        as RemoteFailureError, like any other remote failure.
        """
        if self.data is not None and not isinstance(self.data, list):
            raise RemoteFailureError(
                f"Malformed {model.__name__} payload: expected a list",
            )
        try:
            return [model.model_validate(item) for item in (self.data or [])]
        except PydanticValidationError as e:
            raise RemoteFailureError(
                f"Malformed {model.__name__} payload: {e.error_count()} error(s)",
            ) from e
