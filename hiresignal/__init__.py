"""
HireSignal - Candidate Signal Assessment
Offer-likelihood scoring and interview-kit generation over collected candidate signals.
"""

__version__ = "0.1.0"
