from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...utils.helpers import parse_datetime
from ..client import ApiClient
from ..tasks import CancelToken
from ._records import as_list, record_id

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"


@dataclass(frozen=True)
class Counter:
    counter_id: str
    name: str
    status: str = STATUS_ACTIVE
    is_default: bool = False
    last_session_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE


def parse_counter(row: dict) -> Counter:
    status = str(row.get("status") or STATUS_ACTIVE).lower()
    if status not in (STATUS_ACTIVE, STATUS_INACTIVE):
        status = STATUS_INACTIVE
    return Counter(
        counter_id=record_id(row) or "",
        name=row.get("name") or "",
        status=status,
        is_default=bool(row.get("isDefault")),
        last_session_at=parse_datetime(row.get("lastSessionAt")),
    )


class CountersRepo:
    def __init__(self, api: ApiClient):
        self.api = api

    def list_counters(self, token: Optional[CancelToken] = None) -> list[Counter]:
        """All registers for the tenant, active and inactive, in server order."""
        data = self.api.get("/sales/counters", token=token)
        return [parse_counter(r) for r in as_list(data) if isinstance(r, dict)]
