"""Short-horizon supply forecasting.

Modules
-------
models  — one-step projection models sharing a fit()/predict_next() protocol.
engine  — recursive multi-step projection with widening uncertainty bounds.
"""
