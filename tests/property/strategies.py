"""
Custom Hypothesis Strategies for Container Tests

Provides strategies for generating registration plans, dependency chains
and resolution orders.
"""
import string
from typing import List, Tuple

from hypothesis import strategies as st

from di.registry import ServiceLifetime


# =============================================================================
# NAMES AND LIFETIMES
# =============================================================================

NAME_ALPHABET = string.ascii_letters + string.digits + "_."


def service_name_strategy() -> st.SearchStrategy[str]:
    """Non-empty service names as they appear in tokens."""
    return st.text(alphabet=NAME_ALPHABET, min_size=1, max_size=24)


def lifetime_strategy() -> st.SearchStrategy[ServiceLifetime]:
    return st.sampled_from(list(ServiceLifetime))


# =============================================================================
# REGISTRATION PLANS
# =============================================================================


def registration_plan_strategy(
    min_size: int = 1,
    max_size: int = 12,
) -> st.SearchStrategy[List[Tuple[str, ServiceLifetime]]]:
    """Lists of (name, lifetime) with unique names."""
    return st.lists(
        st.tuples(service_name_strategy(), lifetime_strategy()),
        min_size=min_size,
        max_size=max_size,
        unique_by=lambda item: item[0],
    )


@st.composite
def creation_order_strategy(draw, min_size: int = 1, max_size: int = 10) -> List[int]:
    """A permutation of range(n) for some n in [min_size, max_size]."""
    size = draw(st.integers(min_value=min_size, max_value=max_size))
    return draw(st.permutations(list(range(size))))


@st.composite
def ring_strategy(draw, max_size: int = 8) -> Tuple[int, int]:
    """(ring size, index to start resolving from)."""
    size = draw(st.integers(min_value=1, max_value=max_size))
    start = draw(st.integers(min_value=0, max_value=size - 1))
    return size, start


def chain_and_limit_strategy() -> st.SearchStrategy[Tuple[int, int]]:
    """(dependency chain length, max_resolution_depth)."""
    return st.tuples(
        st.integers(min_value=1, max_value=30),
        st.integers(min_value=1, max_value=30),
    )
