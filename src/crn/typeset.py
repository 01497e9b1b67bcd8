"""LaTeX rendering of reactions and their mass-action ODEs."""

from __future__ import annotations

from typing import Dict, List

import sympy as sp

from .entities import Stoichiometry
from .network import ReactionNetwork

EMPTY_SIDE = r"\varnothing"


def _symbol(name: str) -> sp.Symbol:
    return sp.Symbol(name)


def _side(terms: Stoichiometry) -> str:
    if not terms:
        return EMPTY_SIDE
    parts = []
    for name, coeff in terms:
        latex = sp.latex(_symbol(name))
        parts.append(latex if coeff == 1 else f"{coeff} {latex}")
    return " + ".join(parts)


def _align(rows: List[str]) -> str:
    return "\\begin{align}\n" + " \\\\\n".join(rows) + "\n\\end{align}\n"


def render_reactions_latex(network: ReactionNetwork) -> str:
    """One aligned row per reaction, with the rate written over the arrow."""

    rows = []
    for reaction, compiled in zip(network.reactions, network.rates):
        rate = sp.latex(compiled.sympy_expr)
        rows.append(f"{_side(reaction.reactants)} &\\xrightarrow{{{rate}}} {_side(reaction.products)}")
    return _align(rows)


def ode_expressions(network: ReactionNetwork) -> Dict[str, sp.Expr]:
    """Symbolic right-hand side per species."""

    rhs: Dict[str, sp.Expr] = {name: sp.Integer(0) for name in network.species_names}
    for reaction, compiled in zip(network.reactions, network.rates):
        flux = compiled.sympy_expr
        if reaction.mass_action:
            for name, coeff in reaction.reactants:
                flux = flux * _symbol(name) ** coeff
        for name, change in reaction.net_change().items():
            rhs[name] = rhs[name] + change * flux
    return rhs


def render_odes_latex(network: ReactionNetwork) -> str:
    rows = []
    for name, expr in ode_expressions(network).items():
        rows.append(f"\\frac{{d{sp.latex(_symbol(name))}}}{{dt}} &= {sp.latex(expr)}")
    return _align(rows)


__all__ = ["ode_expressions", "render_odes_latex", "render_reactions_latex"]
