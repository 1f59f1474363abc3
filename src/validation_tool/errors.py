from __future__ import annotations


class ValidatorError(RuntimeError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(ValidatorError):
    """Raised for setup problems detected before or while preparing a run."""


__all__ = ["ValidatorError", "ConfigurationError"]
