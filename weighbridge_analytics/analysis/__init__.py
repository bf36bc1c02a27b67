"""Relating supply to external factors.

Modules
-------
factors     — building the sparse date → ExternalFactor series.
correlation — Pearson r, time-lag pairing, trend fit, residual anomalies,
              and the all-pairs correlation matrix.
"""
