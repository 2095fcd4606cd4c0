"""
Dataset persistence for linreg.
"""

from linreg.store.datasets import DatasetStore, DatasetSummary, DatasetDetail
