"""Filter, test and function registries for the Trellis environment.

Provides a dict-like interface over the Environment's capability maps.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from trellis.environment.core import Environment


@dataclass(frozen=True, slots=True)
class Capability:
    """A registered filter, test or function.

    Attributes:
        name: Registry key
        func: The callable
        safe: If True, string results are marked safe and skip autoescaping
    """

    name: str
    func: Callable[..., Any]
    safe: bool = False


class CapabilityRegistry:
    """Dict-like interface for filters/tests/functions.

    Supports:
        - env.filters['name'] = func
        - env.filters.update({'name': func})
        - func = env.filters['name']
        - 'name' in env.filters

    All mutations use copy-on-write, so a render that already holds the
    previous map keeps seeing a consistent set.
    """

    __slots__ = ("_attr", "_env", "kind")

    def __init__(self, env: Environment, attr: str, kind: str):
        self._env = env
        self._attr = attr
        self.kind = kind

    def _get_dict(self) -> dict[str, Capability]:
        return getattr(self._env, self._attr)

    def _set_dict(self, d: dict[str, Capability]) -> None:
        setattr(self._env, self._attr, d)

    def register(self, name: str, func: Callable[..., Any], safe: bool = False) -> None:
        """Register ``func`` under ``name``, replacing any previous entry."""
        if not callable(func):
            raise TypeError(f"{self.kind.capitalize()} '{name}' must be callable")
        new = self._get_dict().copy()
        new[name] = Capability(name, func, safe)
        self._set_dict(new)

    def lookup(self, name: str) -> Capability | None:
        return self._get_dict().get(name)

    def __getitem__(self, name: str) -> Callable[..., Any]:
        return self._get_dict()[name].func

    def __setitem__(self, name: str, func: Callable[..., Any]) -> None:
        self.register(name, func)

    def __contains__(self, name: object) -> bool:
        return name in self._get_dict()

    def __iter__(self) -> Iterator[str]:
        return iter(self._get_dict())

    def __len__(self) -> int:
        return len(self._get_dict())

    def get(
        self, name: str, default: Callable[..., Any] | None = None
    ) -> Callable[..., Any] | None:
        capability = self._get_dict().get(name)
        return capability.func if capability is not None else default

    def update(self, mapping: dict[str, Callable[..., Any]]) -> None:
        """Batch registration; entries are not marked safe."""
        new = self._get_dict().copy()
        for name, func in mapping.items():
            new[name] = Capability(name, func)
        self._set_dict(new)

    def copy(self) -> dict[str, Callable[..., Any]]:
        return {name: cap.func for name, cap in self._get_dict().items()}

    def keys(self):
        return self._get_dict().keys()

    def items(self):
        return ((name, cap.func) for name, cap in self._get_dict().items())

    def __repr__(self) -> str:
        return f"<CapabilityRegistry {self.kind}s: {sorted(self._get_dict())}>"
