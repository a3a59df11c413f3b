"""Affiliate marketplace domain: models and ledger services."""
