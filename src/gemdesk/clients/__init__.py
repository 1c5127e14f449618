"""Clients, their financial ledger and company-wide transactions."""
