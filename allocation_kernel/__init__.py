"""
Allocation Token Kernel

Lifecycle and batch-update core for domain registration allocation tokens:
- Time-indexed token status state machine
- Selector-driven batch updates (explicit list or identifier prefix)
- Field-level deltas with explicit "leave unchanged" vs "clear" semantics
- All-or-nothing commits, one store transaction per batch
- Bulk pricing package lookups
"""

__version__ = "0.1.0"
