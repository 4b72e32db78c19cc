"""
modules/pos/customers.py

Resolve the (optional) customer for the current sale.

Typing in the phone field runs a debounced candidate search and un-binds
whatever customer was bound. Enter/search runs the resolution chain:
exact phone -> fuzzy search (limit 1) -> open the inline creation form
pre-filled with the typed phone. A miss is never an error.
"""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ...api.errors import DomainError, RequestCancelled
from ...api.repositories.customers_repo import Customer, CustomersRepo
from ...api.tasks import CancelToken
from ...config import CUSTOMER_LIMIT
from ...utils.validators import non_empty
from .search import DebouncedSearch

_log = logging.getLogger(__name__)


class CustomerResolver(QObject):
    customer_bound = Signal(object)         # Customer | None
    candidates_changed = Signal(object)     # list[Customer] | None
    creation_requested = Signal(str)        # pre-filled phone
    creation_finished = Signal(object)      # Customer
    busy_changed = Signal(bool)
    failed = Signal(object)                 # exception

    def __init__(self, repo: CustomersRepo, runner, limit: int = CUSTOMER_LIMIT,
                 parent: Optional[QObject] = None, **search_kwargs):
        super().__init__(parent)
        self._repo = repo
        self._runner = runner
        self.limit = limit
        self._term = ""
        self._bound: Optional[Customer] = None
        self._resolve_token: Optional[CancelToken] = None
        self._creating = False

        self.search = DebouncedSearch(self._search, runner, parent=self, **search_kwargs)
        self.search.results_changed.connect(self.candidates_changed)
        self.search.failed.connect(self.failed)

    def _search(self, term: str, token: CancelToken):
        return self._repo.search(term, self.limit, token)

    # ---- reads ------------------------------------------------------------

    @property
    def term(self) -> str:
        return self._term

    @property
    def bound(self) -> Optional[Customer]:
        return self._bound

    @property
    def candidates(self) -> Optional[list[Customer]]:
        return self.search.results

    @property
    def is_creating(self) -> bool:
        return self._creating

    # ---- typing / selection -----------------------------------------------

    def set_term(self, text: str) -> None:
        """Operator edited the phone/name field."""
        self._cancel_resolve()
        self._term = text or ""
        self._bind(None)
        self.search.set_query(self._term)

    def select(self, customer: Customer) -> None:
        """Operator picked one of the candidates."""
        self._cancel_resolve()
        self.search.clear()
        self._term = customer.phone or customer.name
        self._bind(customer)

    def unbind(self) -> None:
        self._cancel_resolve()
        self.search.clear()
        self._term = ""
        self._bind(None)

    def reset(self) -> None:
        """Back to a blank slate after a completed sale."""
        self.unbind()
        self._creating = False

    # ---- manual resolution --------------------------------------------------

    def resolve_now(self) -> None:
        term = self._term.strip()
        if not term:
            return
        self.search.cancel()
        self._cancel_resolve()
        token = CancelToken()
        self._resolve_token = token
        self.busy_changed.emit(True)
        self._runner.submit(
            lambda: self._resolve(term, token),
            lambda found: self._on_resolved(token, term, found),
            lambda exc: self._on_resolve_failed(token, exc),
            token=token,
        )

    def _resolve(self, term: str, token: CancelToken) -> Optional[Customer]:
        customer = self._repo.get_by_phone(term, token)
        if customer is not None:
            return customer
        token.raise_if_cancelled()
        matches = self._repo.search(term, 1, token)
        return matches[0] if matches else None

    def _on_resolved(self, token: CancelToken, term: str, found: Optional[Customer]) -> None:
        if token is not self._resolve_token:
            return
        self._resolve_token = None
        self.busy_changed.emit(False)
        if found is not None:
            self.select(found)
            return
        _log.info("no customer matches %r; opening creation form", term)
        self._creating = True
        self.creation_requested.emit(term)

    def _on_resolve_failed(self, token: CancelToken, exc: BaseException) -> None:
        if token is not self._resolve_token:
            return
        self._resolve_token = None
        self.busy_changed.emit(False)
        if isinstance(exc, RequestCancelled):
            return
        _log.warning("customer lookup failed: %s", exc)
        self.failed.emit(exc)

    def _cancel_resolve(self) -> None:
        if self._resolve_token is not None:
            self._resolve_token.cancel()
            self._resolve_token = None
            self.busy_changed.emit(False)

    # ---- inline creation ---------------------------------------------------

    def create(self, name: str, phone: str, email: str | None = None, address: str | None = None) -> None:
        """
        Create and bind a new customer.

        Raises DomainError synchronously (no request made) when the name or
        phone is blank.
        """
        if not non_empty(name):
            raise DomainError("Name cannot be empty.")
        if not non_empty(phone):
            raise DomainError("Phone cannot be empty.")
        self.busy_changed.emit(True)
        self._runner.submit(
            lambda: self._repo.create(name, phone, email, address),
            self._on_created,
            self._on_create_failed,
        )

    def cancel_creation(self) -> None:
        self._creating = False

    def _on_created(self, customer: Customer) -> None:
        self.busy_changed.emit(False)
        self._creating = False
        _log.info("customer created: %s", customer.customer_id)
        self.select(customer)
        self.creation_finished.emit(customer)

    def _on_create_failed(self, exc: BaseException) -> None:
        self.busy_changed.emit(False)
        _log.warning("customer creation failed: %s", exc)
        self.failed.emit(exc)

    # ---- internals --------------------------------------------------------

    def _bind(self, customer: Optional[Customer]) -> None:
        if customer == self._bound:
            return
        self._bound = customer
        self.customer_bound.emit(customer)
