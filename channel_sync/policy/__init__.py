"""
Cancellation policy evaluation.
"""

from .evaluator import CancellationPolicyEvaluator

__all__ = ['CancellationPolicyEvaluator']
