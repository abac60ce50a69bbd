"""
validator.py - Composable Validators

A validator is a plain function from a value to the list of errors found in it.
An empty list means the value is valid. Validators never raise and never stop
early: combining two validators runs both and concatenates their errors, so a
value that breaks several rules reports every one of them.

Example:
    positive = validate_if(lambda n: n > 0, lambda n: f"{n} is not positive")
    even = validate_if(lambda n: n % 2 == 0, lambda n: f"{n} is odd")

    check = combine(positive, even)
    check(-3)   # ['-3 is not positive', '-3 is odd']

    check_all = validate_list_and_annotate_err_with_idx(lambda i, e: (i, e), check)
    check_all([2, -2, 3])   # [(1, '-2 is not positive'), (2, '3 is odd')]
"""

from __future__ import annotations
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

A = TypeVar("A")
B = TypeVar("B")
E = TypeVar("E")
F = TypeVar("F")

# Validator[E, A]: A -> List[E]
Validator = Callable[[A], List[E]]


def valid(value) -> list:
    """The validator that accepts everything. Identity of combine()."""
    return []


def validate_if(predicate: Callable[[A], bool], error_on_false: Callable[[A], E]) -> Validator:
    """Report error_on_false(value) when predicate(value) does not hold."""
    def validator(value: A) -> List[E]:
        if predicate(value):
            return []
        return [error_on_false(value)]
    return validator


def validate_optional(inner: Validator) -> Validator:
    """Apply inner to a present value; None is always valid."""
    def validator(value: Optional[A]) -> List[E]:
        if value is None:
            return []
        return inner(value)
    return validator


def validate_foldable(inner: Validator) -> Validator:
    """Apply inner to every element, keeping errors in element order."""
    def validator(values: Iterable[A]) -> List[E]:
        errors: List[E] = []
        for value in values:
            errors.extend(inner(value))
        return errors
    return validator


def validate_list_and_annotate_err_with_idx(
    wrap: Callable[[int, E], F],
    inner: Validator,
) -> Validator:
    """
    Apply inner to every element and tag each error with its element's index.

    Args:
        wrap: Builds the reported error from (0-based index, inner error)
        inner: Validator for a single element

    Returns:
        Validator over a sequence of elements
    """
    def validator(values: Sequence[A]) -> List[F]:
        errors: List[F] = []
        for idx, value in enumerate(values):
            errors.extend(wrap(idx, err) for err in inner(value))
        return errors
    return validator


def validate_with(f: Callable[[A], Validator]) -> Validator:
    """Build a validator from the value itself, then apply it to that value."""
    def validator(value: A) -> List[E]:
        return f(value)(value)
    return validator


def combine(*validators: Validator) -> Validator:
    """Run every validator on the same value and concatenate their errors."""
    if not validators:
        return valid

    def validator(value: A) -> List[E]:
        errors: List[E] = []
        for v in validators:
            errors.extend(v(value))
        return errors
    return validator


def contramap(project: Callable[[A], B], validator: Validator) -> Validator:
    """Reuse a validator over B as a validator over A via project: A -> B."""
    def projected(value: A) -> List[E]:
        return validator(project(value))
    return projected


def map_err(wrap_err: Callable[[E], F], validator: Validator) -> Validator:
    """Pass every error produced by validator through wrap_err."""
    def wrapped(value: A) -> List[F]:
        return [wrap_err(err) for err in validator(value)]
    return wrapped


def contramap_and_map_err(
    project: Callable[[A], B],
    wrap_err: Callable[[E], F],
    validator: Validator,
) -> Validator:
    """
    Narrow a validator to a part of a larger value and re-tag its errors.

    Used to embed a sub-validator in an enclosing one, e.g. checking the
    inputs field of a transaction and reporting the errors as
    "invalid inputs" errors of the transaction.
    """
    return map_err(wrap_err, contramap(project, validator))
