"""HTTP side-channel of the relay (FastAPI)."""
