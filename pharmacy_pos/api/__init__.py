# api/__init__.py
from __future__ import annotations

from ..session import SessionContext
from .client import ApiClient
from .errors import (
    ApiError,
    DomainError,
    NotFound,
    RequestCancelled,
    SessionExpired,
    ValidationFailed,
)
from .repositories import CatalogRepo, CountersRepo, CustomersRepo, SalesRepo
from .tasks import CancelToken, TaskRunner


class PosApi:
    """Bundle of repositories sharing one HTTP client."""

    def __init__(self, client: ApiClient):
        self.client = client
        self.catalog = CatalogRepo(client)
        self.customers = CustomersRepo(client)
        self.counters = CountersRepo(client)
        self.sales = SalesRepo(client)


def build_api(session: SessionContext, **client_kwargs) -> PosApi:
    return PosApi(ApiClient(session, **client_kwargs))


__all__ = [
    "ApiClient",
    "ApiError",
    "CancelToken",
    "DomainError",
    "NotFound",
    "PosApi",
    "RequestCancelled",
    "SessionExpired",
    "TaskRunner",
    "ValidationFailed",
    "build_api",
]
