"""Two-phase optimistic updates for lists of records."""
from __future__ import annotations

import copy
from typing import Any, Mapping

from app.gateway.client import ApiResult


class OptimisticUpdate:
    """Apply a tentative change, then confirm it or roll it back.

    Usage::

        update = OptimisticUpdate(coupons)
        update.apply(coupon_id, isActive=False)
        result = coupons_gateway.set_coupon_active(client, coupon_id, False)
        coupons = update.resolve(result)
    """

    def __init__(self, records: list[dict[str, Any]], key: str = "_id"):
        self.key = key
        self._original = copy.deepcopy(records)
        self._tentative = copy.deepcopy(records)
        self.state = "idle"

    @property
    def records(self) -> list[dict[str, Any]]:
        return self._tentative

    def apply(self, record_id: Any, **changes: Any) -> list[dict[str, Any]]:
        if self.state != "idle":
            raise RuntimeError(f"Update already {self.state}")
        for record in self._tentative:
            if record.get(self.key) == record_id:
                record.update(changes)
                break
        else:
            raise KeyError(record_id)
        self.state = "pending"
        return self._tentative

    def confirm(self, server_record: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        """Keep the tentative state, merging the server's copy when given."""
        if server_record and server_record.get(self.key) is not None:
            for record in self._tentative:
                if record.get(self.key) == server_record.get(self.key):
                    record.update(server_record)
        self.state = "confirmed"
        return self._tentative

    def rollback(self) -> list[dict[str, Any]]:
        self._tentative = copy.deepcopy(self._original)
        self.state = "rolled_back"
        return self._tentative

    def resolve(self, result: ApiResult) -> list[dict[str, Any]]:
        if result.success:
            return self.confirm(result.data if isinstance(result.data, Mapping) else None)
        return self.rollback()
