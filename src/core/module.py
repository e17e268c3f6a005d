"""Feature module interface.

A feature module owns a slice of the SQLite schema, the commands and queries
that work on it, and any reactions to domain events. ``main`` wires every
registered module into the database, the request pipeline and the
subscriber registry at startup.
"""

from typing import TYPE_CHECKING, Protocol


if TYPE_CHECKING:
    from src.core.event_bus import SubscriberRegistry
    from src.core.pipeline import RequestRegistration


class Module(Protocol):
    @property
    def name(self) -> str:
        """Unique module name, used as the registry key."""
        ...

    @property
    def description(self) -> str: ...

    def get_table_schemas(self) -> dict[str, str]:
        """Map each owned table name to its CREATE TABLE statement.

        Table names must be unique across all registered modules.
        """
        ...

    def get_indexes(self) -> list[str]:
        """CREATE INDEX statements for the module's tables."""
        ...

    def get_request_registrations(self) -> list["RequestRegistration"]:
        """One registration per command or query type the module handles."""
        ...

    def register_subscribers(self, registry: "SubscriberRegistry") -> None:
        """Subscribe the module's event handlers. Modules without reactions do nothing."""
        ...
