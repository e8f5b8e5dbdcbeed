"""
MBS Vector Sync - keeps a Qdrant collection of MBS item embeddings in step
with the published schedule.
"""

__version__ = "0.1.0"
