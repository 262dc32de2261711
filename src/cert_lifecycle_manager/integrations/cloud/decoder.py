"""Response decoding.

Turns a raw transport response into a typed model when the status code is
the expected one, and into a structured error otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from cert_lifecycle_manager.integrations.cloud.exceptions import (
    CloudAPIError,
    CloudAuthError,
    CloudDecodeError,
    CloudNotFoundError,
)
from cert_lifecycle_manager.integrations.cloud.models import (
    ApplicationDetails,
    ResponseError,
    ResponseErrors,
    UserDetails,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class RawResponse:
    """What the transport hands back for one request."""

    status_code: int
    status_text: str
    body: bytes

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


def parse_response_errors(body: bytes | None) -> list[ResponseError] | None:
    """Decode an ``{"errors": [{code, message}, ...]}`` body.

    Returns:
        The error records, or None if the body does not have that shape.
    """
    if not body:
        return None
    try:
        return ResponseErrors.model_validate_json(body).errors
    except ValidationError:
        return None


def unexpected_status(operation: str, response: RawResponse) -> CloudAPIError:
    """Build the error for a response whose status code was not expected.

    The message lists every decoded error record; without any, the error
    carries only the raw status.
    """
    return CloudAPIError(
        f"Unexpected status code on {operation}",
        status_code=response.status_code,
        status_text=response.status_text,
        errors=parse_response_errors(response.body),
        body=response.body,
    )


def decode_model(model: type[ModelT], body: bytes, operation: str) -> ModelT:
    """Parse a JSON body into ``model``.

    Raises:
        CloudDecodeError: If the body is not valid JSON or does not fit the model.
    """
    try:
        return model.model_validate_json(body)
    except ValidationError as e:
        raise CloudDecodeError(
            f"Failed to parse {operation} response",
            details=str(e),
        ) from e


def decode(
    response: RawResponse,
    model: type[ModelT],
    operation: str,
    expected_status: int = 200,
) -> ModelT:
    """Decode ``response`` into ``model`` if it has the expected status.

    Args:
        response: Transport response.
        model: Model to parse the body into.
        operation: Human-readable name of the call, used in messages.
        expected_status: Status code that signals success.

    Returns:
        Parsed model.

    Raises:
        CloudAPIError: On any other status code.
        CloudDecodeError: If the body cannot be parsed.
    """
    if response.status_code != expected_status:
        raise unexpected_status(operation, response)
    return decode_model(model, response.body, operation)


def decode_user_details(response: RawResponse) -> UserDetails:
    """Decode the user account lookup used for authentication."""
    if response.status_code == 401:
        raise CloudAuthError(
            "Invalid API key",
            details=f"user account lookup returned {response.status_code} {response.status_text}",
        )
    return decode(response, UserDetails, "user account lookup")


def decode_application_details(response: RawResponse, app_name: str) -> ApplicationDetails:
    """Decode an application lookup by name."""
    if response.status_code in (400, 404):
        raise CloudNotFoundError(
            f"Application '{app_name}' not found",
            resource="application",
            key=app_name,
        )
    if response.status_code == 401:
        raise CloudAuthError(
            "Not authorized to read application",
            details=app_name,
        )
    return decode(response, ApplicationDetails, "application lookup")
