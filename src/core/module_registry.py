"""Module registry for managing feature modules."""

from typing import TYPE_CHECKING, ClassVar

from src.core.module import Module


if TYPE_CHECKING:
    from src.core.event_bus import SubscriberRegistry
    from src.core.pipeline import RequestRegistration


class _RegistryState:
    """Singleton state for module registry."""

    modules: ClassVar[dict[str, Module]] = {}


_registry = _RegistryState()


def register_module(module: Module) -> None:
    """Register a module in the registry.

    Args:
        module: Module instance to register

    Raises:
        ValueError: If a module with the same name is already registered
    """
    if module.name in _registry.modules:
        msg = f"Module '{module.name}' is already registered"
        raise ValueError(msg)
    _registry.modules[module.name] = module


def unregister_all() -> None:
    """Forget every registered module."""
    _registry.modules.clear()


def get_modules() -> dict[str, Module]:
    """Get all registered modules.

    Returns:
        Dictionary mapping module names to Module instances
    """
    return dict(_registry.modules)


def get_all_table_schemas() -> dict[str, str]:
    """Get all table schemas from registered modules.

    Raises:
        ValueError: If two modules declare the same table
    """
    all_schemas: dict[str, str] = {}
    for module in _registry.modules.values():
        for table_name, schema in module.get_table_schemas().items():
            if table_name in all_schemas:
                msg = f"Duplicate table schema '{table_name}' from module '{module.name}'"
                raise ValueError(msg)
            all_schemas[table_name] = schema
    return all_schemas


def get_all_indexes() -> list[str]:
    """Get all indexes from registered modules."""
    all_indexes: list[str] = []
    for module in _registry.modules.values():
        all_indexes.extend(module.get_indexes())
    return all_indexes


def get_all_request_registrations() -> list["RequestRegistration"]:
    """Collect request registrations from every module.

    Raises:
        ValueError: If two registrations claim the same request type
    """
    registrations: list[RequestRegistration] = []
    seen: dict[type, str] = {}
    for module in _registry.modules.values():
        for registration in module.get_request_registrations():
            if registration.request_type in seen:
                msg = (
                    f"Request '{registration.request_type.__name__}' from module '{module.name}' "
                    f"is already handled by module '{seen[registration.request_type]}'"
                )
                raise ValueError(msg)
            seen[registration.request_type] = module.name
            registrations.append(registration)
    return registrations


def register_all_subscribers(registry: "SubscriberRegistry") -> None:
    """Let every module subscribe its event handlers."""
    for module in _registry.modules.values():
        module.register_subscribers(registry)


def register_default_modules() -> None:
    """Register the built-in modules. Modules that are already registered are skipped."""
    from src.modules.activity import ActivityModule
    from src.modules.projects import ProjectsModule
    from src.modules.tasks import TasksModule
    from src.modules.teams import TeamsModule
    from src.modules.users import UsersModule

    for module in (UsersModule(), TeamsModule(), ProjectsModule(), TasksModule(), ActivityModule()):
        if module.name not in _registry.modules:
            register_module(module)
