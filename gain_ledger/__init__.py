"""Stock gain ledger: FIFO cost basis and portfolio aggregation."""
