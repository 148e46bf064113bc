"""Error hierarchy for scynet."""

from __future__ import annotations

from typing import Any, Mapping, Optional


class ScynetError(Exception):
    """Base exception for scynet failures."""

    condition = "error"

    def __init__(
        self,
        message: str,
        *,
        user_message: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.user_message = message if user_message is None else user_message
        self.context = dict(context) if context else {}

    def log_message(self) -> str:
        if not self.context:
            return str(self)
        return f"{self}: {self.context}"


class ConfigError(ScynetError):
    """Configuration loading or validation error."""

    condition = "config"


class ConfigurationMismatchError(ScynetError):
    """Input network lacks required attributes or markers."""

    condition = "configuration_mismatch"


class UnresolvedSharedCompartmentError(ScynetError):
    """No shared exchange compartment marker was found."""

    condition = "unresolved_shared_compartment"


class MalformedIdentifierError(ScynetError):
    """A species identifier does not decompose into organism segments."""

    condition = "malformed_identifier"


class MalformedFluxFileError(ScynetError):
    """Flux table could not be read or parsed."""

    condition = "malformed_flux_file"


class LayoutPreconditionError(ScynetError):
    """Network lacks the markers of a collapsed community network."""

    condition = "layout_precondition"


class ValidationError(ScynetError):
    """Validation error for input data or schema."""

    condition = "validation"


__all__ = [
    "ScynetError",
    "ConfigError",
    "ConfigurationMismatchError",
    "UnresolvedSharedCompartmentError",
    "MalformedIdentifierError",
    "MalformedFluxFileError",
    "LayoutPreconditionError",
    "ValidationError",
]
