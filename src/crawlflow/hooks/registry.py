"""
Process-wide hook registry.

Maps a hook name, as written in hook configurations, to a factory that
receives the hook options and returns the executable hook function::

    def my_hook(options):
        async def hook(context):
            ...
            return context
        return hook

    register_hook("myHook", my_hook)

Registering an existing name replaces the previous factory, so calling code
and tests can override built-in hooks. The registry lives as long as the
process; built-in hooks are registered when ``crawlflow.hooks`` is
imported, and ``HookRegistry.clear()`` empties it (tests restore the
built-ins with ``register_builtin_hooks()``).
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from crawlflow.core.exceptions.custom_exceptions import ConfigurationError
from crawlflow.core.logging.logger import get_logger

logger = get_logger(__name__)

HookFunction = Callable[[Any], Union[Any, Awaitable[Any]]]
HookFactory = Callable[[Dict[str, Any]], HookFunction]


class HookRegistry:
    """Registry of hook factories keyed by hook name"""

    _hooks: Dict[str, HookFactory] = {}

    @classmethod
    def register(cls, name: str, factory: HookFactory) -> None:
        """Register a hook factory, overwriting any previous one"""
        if not callable(factory):
            raise ConfigurationError(
                f"Hook factory for {name} is not callable",
                details={"hook": name},
            )
        if name in cls._hooks:
            logger.debug(f"Overriding hook: {name}")
        cls._hooks[name] = factory

    @classmethod
    def lookup(cls, name: str) -> HookFactory:
        """
        Get the factory registered under a name.

        Raises:
            ConfigurationError: If the name is unknown
        """
        factory = cls._hooks.get(name)
        if factory is None:
            raise ConfigurationError(
                f"Unknown hook: {name}",
                error_code="HOOK_NOT_FOUND",
                details={"hook": name},
            )
        return factory

    @classmethod
    def list_hooks(cls) -> List[str]:
        """List all registered hook names"""
        return sorted(cls._hooks.keys())

    @classmethod
    def clear(cls) -> None:
        """Remove every registration"""
        cls._hooks.clear()


def register_hook(name: str, factory: Optional[HookFactory] = None):
    """
    Register a hook factory.

    Can be called directly or used as a decorator::

        @register_hook("myHook")
        def my_hook(options):
            ...
    """
    if factory is None:

        def decorator(func: HookFactory) -> HookFactory:
            HookRegistry.register(name, func)
            return func

        return decorator

    HookRegistry.register(name, factory)
    return factory


def lookup_hook(name: str) -> HookFactory:
    """Get the factory registered under a name"""
    return HookRegistry.lookup(name)


def list_hooks() -> List[str]:
    """List all registered hook names"""
    return HookRegistry.list_hooks()
