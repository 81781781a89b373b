from .adjustment import ADJUST_METHODS, adjust_pvalue_vector, adjust_pvalues
from .independence_tests import (
    TESTS,
    BB3Test,
    ConservativeTest,
    GammaTest,
    IndependenceTest,
    NoTest,
    PermutationTest,
    make_test,
)

__all__ = [
    "ADJUST_METHODS",
    "adjust_pvalue_vector",
    "adjust_pvalues",
    "TESTS",
    "BB3Test",
    "ConservativeTest",
    "GammaTest",
    "IndependenceTest",
    "NoTest",
    "PermutationTest",
    "make_test",
]
