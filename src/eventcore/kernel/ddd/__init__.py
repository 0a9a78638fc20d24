"""DDD building blocks – public re-export surface."""

from eventcore.kernel.ddd.aggregate import AggregateRoot
from eventcore.kernel.ddd.domain_event import DomainEvent
from eventcore.kernel.ddd.entity import Entity

__all__ = ["AggregateRoot", "DomainEvent", "Entity"]
