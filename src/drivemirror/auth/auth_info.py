"""Authentication information for drivemirror."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

_REQUIRED_KEYS: dict[str, tuple[str, ...]] = {
    "service_account": ("service_account_file", "subject"),
}


@dataclass(slots=True, frozen=True)
class AuthInfo:
    """
    Authentication information.

    Supported kinds:
        kind = "service_account"
            data must include:
                - service_account_file
                - subject (the administrative user to impersonate)
    """

    kind: str
    data: dict[str, Any]

    def __post_init__(self) -> None:
        if self.kind not in _REQUIRED_KEYS:
            raise ValueError(
                f"AuthInfo.kind must be one of {sorted(_REQUIRED_KEYS)}"
            )

        if not isinstance(self.data, dict):
            raise TypeError("AuthInfo.data must be a dict")

        for key in _REQUIRED_KEYS[self.kind]:
            value = self.data.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"AuthInfo.data['{key}'] must be a non-empty string")

    @classmethod
    def service_account(cls, service_account_file: str, subject: str) -> AuthInfo:
        return cls(
            kind="service_account",
            data={"service_account_file": service_account_file, "subject": subject},
        )

    @property
    def subject(self) -> Optional[str]:
        """Impersonated principal."""
        value = self.data.get("subject")
        return str(value) if value else None

    @property
    def service_account_file(self) -> Optional[str]:
        value = self.data.get("service_account_file")
        return str(value) if value else None
