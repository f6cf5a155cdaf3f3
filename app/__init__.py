"""HTTP entrypoint for Personal Ledger."""
