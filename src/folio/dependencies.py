"""
Declarations of the libraries build hooks rely on, so a missing library is
reported before a build starts instead of halfway through it.
"""
from __future__ import annotations

import abc
import functools
import importlib
import typing as t

if t.TYPE_CHECKING:
    from collections.abc import Iterable


class Dependency(abc.ABC):
    """
    Something a Step, Shortcode, or Transform needs installed to run.
    """
    @property
    @abc.abstractmethod
    def satisfied(self) -> bool:
        ...

    @property
    @abc.abstractmethod
    def install_hint(self) -> str:
        ...

    def __repr__(self):
        return f'{self.__class__.__name__}({self}, satisfied={self.satisfied})'


@functools.cache
def _importable(module_name: str):
    try:
        importlib.import_module(module_name)
    except ImportError:
        return False
    return True


class PipDependency(Dependency):
    """
    A Dependency on a package from PyPI. @check_name is the importable module
    name when it differs from the distribution @name.
    """
    def __init__(self, name: str, check_name: str | None = None):
        self.name = name
        self.check_name = check_name or name

    def __str__(self):
        return self.name

    def __eq__(self, other: object):
        return isinstance(other, PipDependency) and other.name == self.name

    def __hash__(self):
        return hash(self.name)

    @property
    def satisfied(self):
        return _importable(self.check_name)

    @property
    def install_hint(self):
        return f'pip install {self.name}'


def missing_dependencies(dependencies: Iterable[Dependency]) -> list[Dependency]:
    """
    The unsatisfied members of @dependencies, sorted by name.
    """
    return sorted((d for d in dependencies if not d.satisfied), key=str)
