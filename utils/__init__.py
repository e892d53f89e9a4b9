# Utils package for Bazaar backend

from .transaction_utils import RetryPolicy, TransactionError, TransientStorageError, run_in_transaction

__all__ = ["RetryPolicy", "TransactionError", "TransientStorageError", "run_in_transaction"]
