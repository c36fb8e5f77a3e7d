"""
Opportunity Detection Module.

Data models for one pipeline pass, the selector-based opportunity classifier
and the profit estimator.
"""
