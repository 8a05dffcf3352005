"""
Domain exceptions - Semantic error types for the identity lifecycle.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""


class IdentityError(Exception):
    """Base class for identity domain errors."""

    pass


class AuthenticationFailure(IdentityError):
    """Bad credentials, or an invalid or expired one-time code."""

    pass


class AuthorizationFailure(IdentityError):
    """Caller or target identity is not allowed to perform the action."""

    pass


class IdentityNotFound(IdentityError):
    """No identity exists for the given id or email."""

    pass


class EmailAlreadyRegistered(IdentityError):
    """An identity already exists for this email address."""

    pass


class InvalidPassword(IdentityError):
    """Password cannot be hashed, e.g. longer than bcrypt accepts."""

    pass


class DeliveryError(Exception):
    """Email transport failed; the message may be retried."""

    pass


class PermanentDeliveryError(DeliveryError):
    """Email transport rejected the message; retrying cannot help."""

    pass
