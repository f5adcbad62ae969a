"""HTTP surface of the submission relay (FastAPI)."""
