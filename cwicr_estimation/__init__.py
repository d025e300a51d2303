"""CWICR Estimation - Cloud Functions.

This package contains the Python Cloud Functions that price construction
projects against the DDC CWICR work item catalog.

Architecture:
- Query Cache: time-bounded memoization of similarity queries
- Similarity Resolver: embedding + filtered vector search per catalog language
- Cost Aggregator: material/labor/phase cost roll-up
- Estimation Service: per-element assembly with partial-failure tolerance
"""

__version__ = "1.0.0"
