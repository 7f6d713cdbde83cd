"""Domain layer for the bonus points ledger."""
