"""Engine core package.

Contains the dataset parser, analyzers, threshold evaluation, ledger
capability, dataset providers, schemas, and configuration.
"""
