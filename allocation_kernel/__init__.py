"""
Allocation Kernel

Quantity reservation engine for procurement line items:
- Hierarchical scopes (contract, supply authorization, commitment)
- No over-allocation, serialized per (line item, scope)
- Inbound invoices exempt from capacity checks
- Append-only records; consumption always derived by summing
"""

__version__ = "0.1.0"
