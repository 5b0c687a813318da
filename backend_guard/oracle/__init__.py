"""
Oracle package: the ledger boundary.

transaction_preparer encodes unsigned AuditRegistry.recordAudit calls;
explorer reads transaction history back from an Etherscan-style API.
"""

from backend_guard.oracle.explorer import ExplorerClient, ExplorerTransaction
from backend_guard.oracle.transaction_preparer import AuditTransactionIntent, TransactionPreparer

__all__ = [
    "AuditTransactionIntent",
    "ExplorerClient",
    "ExplorerTransaction",
    "TransactionPreparer",
]
