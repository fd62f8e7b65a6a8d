"""Ingest utilities: seed data loaders for the ledger database."""
