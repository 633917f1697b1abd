"""
Named registry for pluggable implementations (element types, integrators,
constitutive models).

Usage
-----
    integrators = MethodRegistry("time integrator")
    integrators.register("velocity_verlet", VelocityVerlet)

    @integrators.register("explicit_newmark")
    class ExplicitNewmark: ...

    cls = integrators["velocity_verlet"]
    integrators.available()  # ["velocity_verlet", "explicit_newmark"]
"""

from typing import Any, Callable, Optional

from lgrlib._errors import ConfigurationError


class MethodRegistry:
    """Registry mapping string keys to implementations.

    Parameters
    ----------
    name : str
        Human-readable name used in error messages (e.g. "element type").
    """

    def __init__(self, name: str):
        self.name = name
        self._methods: dict[Any, Callable] = {}

    def register(self, key, fn: Optional[Callable] = None):
        """Register ``fn`` under ``key``; without ``fn`` acts as a decorator."""
        if fn is None:
            def decorator(f):
                self._methods[key] = f
                return f
            return decorator
        self._methods[key] = fn
        return fn

    def __getitem__(self, key) -> Callable:
        if key not in self._methods:
            raise ConfigurationError(
                f"Unknown {self.name}: {key!r}. "
                f"Available: {list(self._methods.keys())}"
            )
        return self._methods[key]

    def __contains__(self, key) -> bool:
        return key in self._methods

    def available(self) -> list:
        """Return the registered keys in registration order."""
        return list(self._methods.keys())
