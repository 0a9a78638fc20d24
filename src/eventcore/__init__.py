"""
eventcore – event store and aggregate replay engine.

Import path convention::

    from eventcore.kernel.errors import DomainError
    from eventcore.kernel.ddd import DomainEvent
    from eventcore.application.event_sourcing import EventSourcedAggregate, InMemoryEventStore
    from eventcore.adapters.sqlalchemy import SQLAlchemyEventStore
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
