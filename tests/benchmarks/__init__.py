"""Throughput benchmarks for retry decisions, history analysis and the parallel executor.

``pytest tests/benchmarks/ --benchmark-sort=median`` compares runs;
``--benchmark-disable`` runs each benchmark once as a plain test.
"""
