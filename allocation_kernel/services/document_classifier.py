"""
DocumentClassifier -- Classify invoices as inbound or outbound.

Inbound (receiving) invoices are exempt from capacity checks, so the
validator asks this classifier before doing any other work for a request
that references an invoice.
"""

from __future__ import annotations

from allocation_kernel.domain.dtos import InvoiceKind
from allocation_kernel.domain.lookups import InvoiceLookup
from allocation_kernel.exceptions import InvoiceNotFoundError
from allocation_kernel.logging_config import get_logger

logger = get_logger("services.document_classifier")


class DocumentClassifier:
    """
    Resolve an invoice reference to its InvoiceKind.

    Contract:
        classify_invoice() either returns a kind or raises; it never guesses
        a kind for an unknown invoice.
    """

    def __init__(self, invoice_lookup: InvoiceLookup):
        self._invoices = invoice_lookup

    def classify_invoice(self, invoice_id: str) -> InvoiceKind:
        """
        Raises:
            InvoiceNotFoundError: If the lookup does not know the invoice.
        """
        invoice = self._invoices.get(invoice_id)
        if invoice is None:
            logger.warning("invoice_not_found", extra={"invoice_id": invoice_id})
            raise InvoiceNotFoundError(invoice_id)

        logger.debug(
            "invoice_classified",
            extra={"invoice_id": invoice_id, "invoice_kind": invoice.kind.value},
        )
        return invoice.kind

    def is_inbound(self, invoice_id: str) -> bool:
        return self.classify_invoice(invoice_id) is InvoiceKind.INBOUND
