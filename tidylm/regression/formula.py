"""
Formula compiler.

Turns an R-style model formula into an explicit response factor, a list
of terms and an intercept flag. The term algebra (``+``, ``-``, ``:``,
``*``, ``/``, parentheses, ``0 +`` / ``- 1``) is parsed by patsy; each
resulting factor code is then interpreted by Factor.from_code.

    >>> parse_formula("mpg ~ wt + C(cyl) + wt:C(cyl) - 1")
    Formula(response=Factor(variable='mpg', ...), terms=(...), intercept=False)
"""

from __future__ import annotations

from dataclasses import dataclass

from patsy import ModelDesc, INTERCEPT, PatsyError

from tidylm.core.exceptions import ValidationError
from tidylm.regression.terms import Factor, Term


@dataclass(frozen=True)
class Formula:
    """
    Compiled model formula.

    Attributes:
        response: Factor producing the response column
        terms: Explanatory terms, main effects before interactions
        intercept: Whether a constant column is prepended
        text: The original formula string
    """
    response: Factor
    terms: tuple[Term, ...]
    intercept: bool
    text: str

    @property
    def term_names(self) -> list[str]:
        return [t.name for t in self.terms]

    @property
    def variables(self) -> list[str]:
        """Dataset columns referenced by the formula, response first."""
        names = [self.response.variable]
        for term in self.terms:
            for factor in term.factors:
                if factor.variable not in names:
                    names.append(factor.variable)
        return names


def parse_formula(text: str) -> Formula:
    """
    Compile a formula string.

    Args:
        text: Formula such as ``"y ~ x1 + log(x2) + group"``

    Returns:
        Formula with terms ordered by interaction order (stable within an order)

    Raises:
        ValidationError: On syntax errors, a missing or compound response,
            or unsupported factor code
    """
    if not isinstance(text, str) or '~' not in text:
        raise ValidationError(f"Formula must have the form 'response ~ terms', got {text!r}")

    try:
        desc = ModelDesc.from_formula(text)
    except PatsyError as e:
        raise ValidationError(f"Cannot parse formula {text!r}: {e}") from e

    response = _response_factor(desc.lhs_termlist, text)

    intercept = False
    terms: list[Term] = []
    for patsy_term in desc.rhs_termlist:
        if patsy_term == INTERCEPT:
            intercept = True
            continue
        term = Term(tuple(Factor.from_code(f.code) for f in patsy_term.factors))
        if term.name not in [t.name for t in terms]:
            terms.append(term)

    terms.sort(key=lambda t: t.order)
    return Formula(response=response, terms=tuple(terms), intercept=intercept, text=text)


def _response_factor(lhs_termlist: list, text: str) -> Factor:
    if not lhs_termlist:
        raise ValidationError(f"Formula {text!r} has no response")
    if len(lhs_termlist) > 1 or len(lhs_termlist[0].factors) != 1:
        raise ValidationError(f"Formula {text!r} must have a single response column")

    response = Factor.from_code(lhs_termlist[0].factors[0].code)
    if response.transform in ('categorical', 'poly'):
        raise ValidationError(
            f"Response {response.label!r} must be a single numeric column"
        )
    return response
