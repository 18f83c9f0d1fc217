"""
Heart Health Gateway

HTTP relay between health-risk classification clients and an external
machine-learning inference service, plus an async client that fans a patient
record out across every classifier/model combination.
"""

__version__ = "1.0.0"
