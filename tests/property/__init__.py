"""
Property-based tests for the container.

Hypothesis generates registration plans, dependency rings and scope
trees and checks lifetime identity, scope isolation, reverse-order
disposal and the cycle/depth guards against them.
"""
