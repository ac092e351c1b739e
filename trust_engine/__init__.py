"""Trust analytics engine package.

Computes fairness, robustness, and drift statistics over tabular evaluation
datasets and records them as metric samples in a ledger.
"""
