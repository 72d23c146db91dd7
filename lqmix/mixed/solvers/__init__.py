"""Solver registry — maps method names to solver classes.

Adding a new solver means calling :func:`register_solver`; no existing
code needs to change.

Usage
-----
>>> from lqmix.mixed.solvers import get_solver
>>> solver = get_solver("gs")      # returns a GradientSearchSolver
>>> result = solver.solve(problem, tau=0.5)
"""

from __future__ import annotations

from lqmix.mixed.solvers.base import BaseSolver, SolverResult

__all__ = [
    "BaseSolver",
    "SolverResult",
    "get_solver",
    "register_solver",
    "list_solvers",
]

# ──────────────────────────────────────────────────────────────────────
# Private registry
# ──────────────────────────────────────────────────────────────────────

_REGISTRY: dict[str, type[BaseSolver]] = {}


# ──────────────────────────────────────────────────────────────────────
# Public helpers
# ──────────────────────────────────────────────────────────────────────

def register_solver(name: str, cls: type[BaseSolver]) -> None:
    """Register a solver class under *name*.

    Raises
    ------
    TypeError
        If *cls* is not a subclass of ``BaseSolver``.
    """
    if not (isinstance(cls, type) and issubclass(cls, BaseSolver)):
        raise TypeError(f"{cls!r} is not a BaseSolver subclass.")
    _REGISTRY[name] = cls


def get_solver(name: str, **kwargs) -> BaseSolver:
    """Return an **instance** of the solver registered under *name*.

    Raises
    ------
    KeyError
        If *name* is not in the registry.
    """
    try:
        cls = _REGISTRY[name]
    except KeyError:
        available = ", ".join(sorted(_REGISTRY)) or "(none)"
        raise KeyError(
            f"Unknown solver {name!r}. Available solvers: {available}"
        ) from None
    return cls(**kwargs)


def list_solvers() -> list[str]:
    """Return the names of all registered solvers."""
    return sorted(_REGISTRY)


def _register_builtins() -> None:
    from lqmix.mixed.solvers.df import NelderMeadSolver
    from lqmix.mixed.solvers.gs import GradientSearchSolver

    register_solver("gs", GradientSearchSolver)
    register_solver("df", NelderMeadSolver)


_register_builtins()
