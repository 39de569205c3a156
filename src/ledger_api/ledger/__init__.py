"""Ledger domain: models, rollups, editors, invitations and session rules."""
