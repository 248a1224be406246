from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TenantIdentity:
    id: str | int
    is_active: bool = True

    def __post_init__(self):
        if self.id is None or str(self.id) == "":
            raise ValueError("tenant id is required")


@dataclass(frozen=True)
class OtpRecord:
    identifier: str
    code: str
    created_at: datetime
    expires_at: datetime
    id: str | None = None

    def __post_init__(self):
        if not self.identifier:
            raise ValueError("identifier is required")
        if not self.code:
            raise ValueError("code is required")

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
