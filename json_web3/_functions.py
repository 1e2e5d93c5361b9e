"""Function payloads: source capture and reconstruction.

This is the only module in the package that can execute code taken from
JSON input.  Nothing here runs unless the caller went through
encode_unsafe() / decode_unsafe(); the safe entry points never reach
function_from_source().

Capture works from the defining file, not from the live object:
inspect.findsource() gives the module text, ast locates the definition
that produced the code object, and ast.unparse() emits a normalized,
self-contained snippet.  Decorators are stripped (they name things the
decoding side cannot see), and a lambda is cut out of whatever line it
was written on.  Closures and module globals are NOT captured.
"""

from __future__ import annotations

import ast
import copy
import inspect
import logging
from types import CodeType, FunctionType
from typing import Any, Dict, List, Optional

from ._constants import FUNCTION_TAG
from ._errors import decode_error, parse_error

logger = logging.getLogger(__name__)

_FILENAME = "<json-web3 function>"


def is_function(value: Any) -> bool:
    """True for anything a JSON serializer would treat as a function."""
    return inspect.isroutine(value)


# ── Source capture ────────────────────────────────────────────

def _arg_names(args: ast.arguments) -> List[str]:
    names = [a.arg for a in args.posonlyargs + args.args + args.kwonlyargs]
    if args.vararg is not None:
        names.append(args.vararg.arg)
    if args.kwarg is not None:
        names.append(args.kwarg.arg)
    return names


def _code_arg_names(code: CodeType) -> List[str]:
    count = code.co_argcount + code.co_kwonlyargcount
    if code.co_flags & inspect.CO_VARARGS:
        count += 1
    if code.co_flags & inspect.CO_VARKEYWORDS:
        count += 1
    return list(code.co_varnames[:count])


def _find_definition(tree: ast.AST, fn: FunctionType) -> Optional[ast.AST]:
    code = fn.__code__
    first = code.co_firstlineno
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            if node.name != fn.__name__:
                continue
            # co_firstlineno points at the first decorator, if any.
            start = min([d.lineno for d in node.decorator_list] + [node.lineno])
            if start == first:
                bare = copy.copy(node)
                bare.decorator_list = []
                return bare
        elif isinstance(node, ast.Lambda):
            # Several lambdas can share a line; the argument list is the
            # cheapest discriminator the code object still carries.
            if fn.__name__ == "<lambda>" and node.lineno == first \
                    and _arg_names(node.args) == _code_arg_names(code):
                return node
    return None


def function_source(fn: Any) -> Optional[str]:
    """Return normalized source text for fn, or None if it has none.

    Builtins, C functions and anything defined in exec'd text have no
    recoverable source; callers treat None as "omit this value".
    """
    if inspect.ismethod(fn):
        fn = fn.__func__
    if not inspect.isfunction(fn):
        return None
    try:
        lines, _ = inspect.findsource(fn)
    except (OSError, TypeError):
        logger.debug("no source available for %r, omitting", fn)
        return None
    try:
        tree = ast.parse("".join(lines))
    except SyntaxError:
        logger.debug("source file for %r does not parse, omitting", fn)
        return None
    node = _find_definition(tree, fn)
    if node is None:
        logger.debug("definition of %r not found in its source file", fn)
        return None
    return ast.unparse(node)


# ── Reconstruction (unsafe) ──────────────────────────────────

def function_from_source(payload: Any) -> Any:
    """Rebuild a function from a function-marker payload.

    A lone lambda expression is evaluated; otherwise the text is executed
    in a fresh namespace and the last top-level def it creates is returned.
    """
    if not isinstance(payload, str):
        raise decode_error(FUNCTION_TAG, "expected source string, got {}".format(
            type(payload).__name__))
    try:
        tree = ast.parse(payload, filename=_FILENAME)
    except SyntaxError as e:
        raise parse_error(FUNCTION_TAG, "source does not parse: {}".format(e.msg)) from e

    logger.debug("executing function payload (%d chars)", len(payload))
    namespace: Dict[str, Any] = {}

    body = tree.body
    if len(body) == 1 and isinstance(body[0], ast.Expr) \
            and isinstance(body[0].value, ast.Lambda):
        expr = ast.Expression(body=body[0].value)
        return eval(compile(expr, _FILENAME, "eval"), namespace)

    defined = [n.name for n in body if isinstance(n, (ast.FunctionDef, ast.AsyncFunctionDef))]
    if not defined:
        raise parse_error(FUNCTION_TAG, "source defines no function")
    exec(compile(tree, _FILENAME, "exec"), namespace)
    return namespace[defined[-1]]
