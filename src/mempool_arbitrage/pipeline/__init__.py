"""Opportunity pipeline orchestration and its counters."""
