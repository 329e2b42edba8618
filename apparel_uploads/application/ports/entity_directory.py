from typing import Protocol

from ...uploads.types import EntityType


class EntityDirectory(Protocol):
    def exists(self, entity_type: EntityType, entity_id: str) -> bool:
        ...
