"""Realtime presence and message relay for CRM comms threads."""
