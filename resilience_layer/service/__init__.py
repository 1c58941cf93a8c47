"""HTTP service layer (FastAPI) over the resilience components."""
