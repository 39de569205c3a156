"""Outbound notifications (invitation email)."""
