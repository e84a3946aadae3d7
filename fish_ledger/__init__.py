"""Fish Ledger: billing and payment ledger for a fish-trading business."""

__version__ = "1.0.0"
