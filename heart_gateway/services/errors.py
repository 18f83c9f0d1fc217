"""
Gateway error taxonomy.

Every failure the relay reports is a GatewayError tagged with one of four
kinds. The HTTP layer renders them uniformly; nothing inspects ad hoc
exception attributes.
"""

from enum import Enum


class GatewayErrorKind(str, Enum):
    """The four kinds of failure a relay operation can report."""
    VALIDATION = "validation"
    UPSTREAM_TRANSPORT = "upstream_transport"
    UPSTREAM_APPLICATION = "upstream_application"
    INTERNAL = "internal"


UPSTREAM_UNAVAILABLE_MESSAGE = "Inference service is not running. Please start the inference server."


class GatewayError(Exception):
    """
    A relay failure with an HTTP status and a client-safe message.

    Attributes:
        kind: Which of the four failure kinds this is.
        status_code: HTTP status to return to the caller.
        message: Human-readable message; never contains internal details.
    """

    def __init__(self, kind: GatewayErrorKind, status_code: int, message: str):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.message = message

    def __repr__(self) -> str:
        return f"GatewayError(kind={self.kind.value!r}, status_code={self.status_code}, message={self.message!r})"

    @classmethod
    def validation(cls, message: str) -> "GatewayError":
        return cls(GatewayErrorKind.VALIDATION, 400, message)

    @classmethod
    def upstream_transport(cls, message: str = UPSTREAM_UNAVAILABLE_MESSAGE) -> "GatewayError":
        return cls(GatewayErrorKind.UPSTREAM_TRANSPORT, 503, message)

    @classmethod
    def upstream_application(cls, status_code: int, message: str) -> "GatewayError":
        return cls(GatewayErrorKind.UPSTREAM_APPLICATION, status_code, message)

    @classmethod
    def internal(cls, message: str = "An unexpected error occurred") -> "GatewayError":
        return cls(GatewayErrorKind.INTERNAL, 500, message)
