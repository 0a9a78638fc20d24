"""SQLAlchemy adapter – durable event store and session factory."""
from eventcore.adapters.sqlalchemy.event_store import SQLAlchemyEventStore, domain_events
from eventcore.adapters.sqlalchemy.session import SqlAlchemySessionFactory

__all__ = [
    "SQLAlchemyEventStore",
    "SqlAlchemySessionFactory",
    "domain_events",
]
