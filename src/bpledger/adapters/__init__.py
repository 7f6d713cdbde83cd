"""Adapters connecting the ledger domain to storage and outer surfaces."""
