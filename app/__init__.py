"""HTTP surface for OTP Insight (FastAPI)."""
