"""Property-based tests using Hypothesis.

These tests use generative testing to explore edge cases:
- arbitrary offline edit sequences converging after replay
- FIFO ordering of the job queue under partial completion
- the retry ceiling for any configured attempt budget

To run property tests:
    pytest tests/property/ -v --hypothesis-show-statistics
"""
