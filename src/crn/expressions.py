"""Rate-expression compilation on top of sympy."""

from __future__ import annotations

import ast
from typing import Callable, Iterable, Mapping, Set

import sympy as sp
from sympy.core.function import AppliedUndef

from .entities import CompiledExpression
from .errors import ModelError, UnknownSymbol

TIME_SYMBOL = "t"

_ALLOWED_NODES = (
    ast.Expression,
    ast.BinOp,
    ast.UnaryOp,
    ast.Call,
    ast.Name,
    ast.Constant,
    ast.Load,
    ast.operator,
    ast.unaryop,
)


def _check_names(raw: str, text: str, symbols: Set[str], functions: Set[str], where: str) -> None:
    # sympify would silently resolve names such as E, pi, I or N to its own objects
    try:
        tree = ast.parse(raw, mode="eval")
    except SyntaxError as exc:
        raise ModelError(f"Cannot parse rate expression '{text}' in {where or 'model'}: {exc.msg}") from exc
    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise ModelError(
                f"Unsupported construct {type(node).__name__} in rate expression '{text}' in {where or 'model'}"
            )
        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.keywords or len(node.args) != 1:
                raise ModelError(f"Rate expression '{text}' in {where or 'model'} has a malformed call")
            if node.func.id not in functions:
                raise UnknownSymbol(node.func.id, where)
        elif isinstance(node, ast.Name) and node.id not in symbols and node.id not in functions:
            raise UnknownSymbol(node.id, where)
        elif isinstance(node, ast.Constant) and not isinstance(node.value, (int, float)):
            raise ModelError(f"Non-numeric literal in rate expression '{text}' in {where or 'model'}")


def parse_expression(
    text: str,
    *,
    symbols: Iterable[str],
    functions: Iterable[str] = (),
    where: str = "",
) -> sp.Expr:
    """Parse ``text`` into a sympy expression restricted to the declared names."""

    symbol_names = set(symbols)
    function_names = set(functions)
    local_names = {name: sp.Symbol(name) for name in symbol_names}
    local_names.update({name: sp.Function(name) for name in function_names})
    raw = str(text).strip().replace("^", "**")
    if not raw:
        raise ModelError(f"Empty rate expression in {where or 'model'}")
    _check_names(raw, text, symbol_names, function_names, where)
    try:
        expr = sp.sympify(raw, locals=local_names)
    except (sp.SympifyError, SyntaxError, TypeError) as exc:
        raise ModelError(f"Cannot parse rate expression '{text}' in {where or 'model'}: {exc}") from exc
    if not isinstance(expr, sp.Expr):
        raise ModelError(f"Rate expression '{text}' in {where or 'model'} is not numeric")
    for applied in expr.atoms(AppliedUndef):
        name = applied.func.__name__
        if name not in function_names:
            raise UnknownSymbol(name, where)
    for symbol in expr.free_symbols:
        if symbol.name not in symbol_names:
            raise UnknownSymbol(symbol.name, where)
    return expr


def compile_expression(
    text: str,
    *,
    symbols: Iterable[str],
    functions: Mapping[str, Callable[[float], float]],
    where: str = "",
) -> CompiledExpression:
    expr = parse_expression(text, symbols=symbols, functions=functions.keys(), where=where)
    free_symbols = sorted(expr.free_symbols, key=lambda s: s.name)
    tokens = tuple(symbol.name for symbol in free_symbols)
    func = sp.lambdify(free_symbols, expr, modules=[dict(functions), "math"])
    return CompiledExpression(text=str(text), tokens=tokens, func=func, sympy_expr=expr)


__all__ = ["TIME_SYMBOL", "compile_expression", "parse_expression"]
