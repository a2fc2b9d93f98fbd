"""Leave Ledger — leave balances and the leave request lifecycle."""
