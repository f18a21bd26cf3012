"""SQL-backed LineItemLookup."""

from __future__ import annotations

from uuid import UUID

from allocation_kernel.domain.dtos import LineItem
from allocation_kernel.exceptions import LineItemNotFoundError
from allocation_kernel.models.reference import LineItemModel
from allocation_kernel.selectors.base import BaseSelector


class LineItemSelector(BaseSelector):
    """Reads procurement line items as frozen LineItem DTOs."""

    def get(self, line_item_id: UUID) -> LineItem:
        """
        Raises:
            LineItemNotFoundError: If no line item has this id.
        """
        model = self.session.get(LineItemModel, line_item_id)
        if model is None:
            raise LineItemNotFoundError(str(line_item_id))
        return model.to_dto()

    def exists(self, line_item_id: UUID) -> bool:
        return self.session.get(LineItemModel, line_item_id) is not None
