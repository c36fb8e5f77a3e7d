"""Execution: fee oracle, execution contract calldata and bundle submission."""
