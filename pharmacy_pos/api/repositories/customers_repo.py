from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from ..client import ApiClient
from ..errors import DomainError, NotFound
from ..tasks import CancelToken
from ._records import as_list, record_id, to_int


@dataclass(frozen=True)
class Customer:
    customer_id: str
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    loyalty_points: int = 0


def parse_customer(row: dict) -> Customer:
    return Customer(
        customer_id=record_id(row) or "",
        name=row.get("name") or "",
        phone=row.get("phone") or "",
        email=row.get("email") or None,
        address=row.get("address") or None,
        loyalty_points=to_int(row.get("loyaltyPoints")),
    )


class CustomersRepo:
    def __init__(self, api: ApiClient):
        self.api = api

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        s = s.strip()
        return s or None

    @staticmethod
    def _ensure_non_empty(value: str | None, field_label: str) -> None:
        if value is None or value.strip() == "":
            raise DomainError(f"{field_label} cannot be empty.")

    # ---- Queries ----------------------------------------------------------

    def search(self, term: str, limit: int, token: Optional[CancelToken] = None) -> list[Customer]:
        """Ranked matches on phone / name (server-side)."""
        data = self.api.get(
            "/customers/customers",
            params={"search": term.strip(), "limit": limit},
            token=token,
        )
        return [parse_customer(r) for r in as_list(data) if isinstance(r, dict)]

    def get_by_phone(self, phone: str, token: Optional[CancelToken] = None) -> Customer | None:
        """Exact phone match. A miss is a normal outcome and returns None."""
        phone = phone.strip()
        if not phone:
            return None
        try:
            data = self.api.get(f"/customers/customers/phone/{quote(phone, safe='')}", token=token)
        except NotFound:
            return None
        return parse_customer(data) if isinstance(data, dict) else None

    # ---- Mutations --------------------------------------------------------

    def create(self, name: str, phone: str, email: str | None = None,
               address: str | None = None) -> Customer:
        """
        Create a customer. Name and phone are validated here, before any
        request is made.
        """
        self._ensure_non_empty(name, "Name")
        self._ensure_non_empty(phone, "Phone")

        payload = {
            "name": self._normalize_text(name),
            "phone": self._normalize_text(phone),
        }
        email_n = self._normalize_text(email)
        address_n = self._normalize_text(address)
        if email_n:
            payload["email"] = email_n
        if address_n:
            payload["address"] = address_n

        data = self.api.post("/customers/customers", payload)
        return parse_customer(data if isinstance(data, dict) else payload)
